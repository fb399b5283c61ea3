"""
Factor specification parser.

Turns the operator-supplied factor list (the `mfaTypes` secret) into the
factor objects the authentication API expects.

Format:
- Comma-separated tokens, whitespace around tokens is ignored
- Each token is `provider` or `provider/optionName=optionValue`
- `push-notification` requires `optFallback=true|false`
- `phone` requires `preferredMethod=sms|voice|both`

Invalid or unknown tokens are dropped. A list with no valid tokens parses
to an empty list, which turns opt-in MFA off for the login.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Union


class FactorType(str, Enum):
    OPT = 'opt'
    RECOVERY_CODE = 'recovery-code'
    EMAIL = 'email'
    WEBAUTHN_PLATFORM = 'webauthn-platform'
    WEBAUTHN_ROAMING = 'webauthn-roaming'
    PUSH_NOTIFICATION = 'push-notification'
    PHONE = 'phone'


class PreferredMethod(str, Enum):
    SMS = 'sms'
    VOICE = 'voice'
    BOTH = 'both'


# Providers that take no option; anything after the '/' is ignored
SIMPLE_FACTOR_TYPES = frozenset({
    FactorType.OPT,
    FactorType.RECOVERY_CODE,
    FactorType.EMAIL,
    FactorType.WEBAUTHN_PLATFORM,
    FactorType.WEBAUTHN_ROAMING,
})

OPT_FALLBACK_VALUES = {'true': True, 'false': False}


@dataclass(frozen=True)
class SimpleFactor:
    type: FactorType

    def as_api_factor(self) -> dict:
        return {'type': self.type.value}


@dataclass(frozen=True)
class PushNotificationFactor:
    opt_fallback: bool

    type = FactorType.PUSH_NOTIFICATION

    def as_api_factor(self) -> dict:
        return {
            'type': self.type.value,
            'option': {'optFallback': 'true' if self.opt_fallback else 'false'}
        }


@dataclass(frozen=True)
class PhoneFactor:
    preferred_method: PreferredMethod

    type = FactorType.PHONE

    def as_api_factor(self) -> dict:
        return {
            'type': self.type.value,
            'option': {'preferredMethod': self.preferred_method.value}
        }


FactorDescriptor = Union[SimpleFactor, PushNotificationFactor, PhoneFactor]


def _option_value(rest: Optional[str], name: str) -> Optional[str]:
    """Return the value of `name=value` in rest, or None if rest is anything else."""
    if rest is None:
        return None

    option_name, separator, option_value = rest.partition('=')
    if not separator or option_name.strip() != name:
        return None

    return option_value.strip()


def parse_factor_spec(token: str) -> Optional[FactorDescriptor]:
    """
    Parse a single factor token.

    Args:
        token: One entry of the factor list, e.g. "phone/preferredMethod=sms"

    Returns:
        The factor descriptor, or None if the token is not valid
    """
    provider, separator, rest = token.partition('/')
    provider = provider.strip()
    if not separator:
        rest = None

    try:
        factor_type = FactorType(provider)
    except ValueError:
        return None

    if factor_type in SIMPLE_FACTOR_TYPES:
        return SimpleFactor(factor_type)

    if factor_type is FactorType.PUSH_NOTIFICATION:
        value = _option_value(rest, 'optFallback')
        if value not in OPT_FALLBACK_VALUES:
            return None
        return PushNotificationFactor(opt_fallback=OPT_FALLBACK_VALUES[value])

    # FactorType.PHONE
    value = _option_value(rest, 'preferredMethod')
    try:
        return PhoneFactor(preferred_method=PreferredMethod(value))
    except ValueError:
        return None


def parse_factor_specs(config: Optional[str]) -> List[FactorDescriptor]:
    """
    Parse the comma-separated factor list.

    Never raises: invalid tokens are dropped and an absent or blank list
    yields an empty result. Valid tokens keep their relative order.

    Args:
        config: Raw factor list from the operator configuration

    Returns:
        List of validated factor descriptors
    """
    if not config or not config.strip():
        return []

    factors = []
    for token in config.split(','):
        token = token.strip()
        if not token:
            continue

        factor = parse_factor_spec(token)
        if factor is not None:
            factors.append(factor)

    return factors


def as_api_factors(factors: Iterable[FactorDescriptor]) -> List[dict]:
    """Convert descriptors to the list of factor objects sent to the API."""
    return [factor.as_api_factor() for factor in factors]
