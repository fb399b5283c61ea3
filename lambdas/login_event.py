"""
Login event model.

The hosting runtime hands the hook a loosely shaped dictionary:

    {
        'secrets': {'mfaTypes': 'email,opt', 'debug': True},
        'user': {
            'user_id': 'auth0|5f7c8ec7c33c6c004bbafe82',
            'username': 'jackrackham',
            'email': 'jack.rackham@pyrates.live',
            'multifactor': ['guardian'],
            'user_metadata': {'mfaOptIn': True}
        }
    }

Any of these keys may be missing or null. The dataclasses below make the
optional parts explicit before the orchestrator looks at them.

The debug toggle is read strictly: a string is on only for 1, true, yes or
on, so "false" and "0" (common in environment variables) turn it off.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

TRUTHY_STRINGS = {'1', 'true', 'yes', 'on'}


def is_truthy(value: Any) -> bool:
    """Interpret a secret or environment value as a boolean toggle."""
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def has_opt_in_flag(event: Mapping[str, Any]) -> bool:
    """True if the raw event carries user_metadata.mfaOptIn at all."""
    user = event.get('user') or {}
    metadata = user.get('user_metadata') or {}
    return metadata.get('mfaOptIn') is not None


@dataclass(frozen=True)
class OptInConfig:
    """Operator configuration for the hook."""

    mfa_types: Optional[str] = None
    debug: bool = False

    @classmethod
    def from_secrets(cls, secrets: Optional[Mapping[str, Any]]) -> 'OptInConfig':
        """
        Build the configuration from the event secrets.

        A secret that is not present at all falls back to the MFA_TYPES and
        DEBUG environment variables. A secret that is present but null stays
        null.
        """
        secrets = secrets or {}

        if 'mfaTypes' in secrets:
            mfa_types = secrets['mfaTypes']
        else:
            mfa_types = os.environ.get('MFA_TYPES')

        if 'debug' in secrets:
            debug = secrets['debug']
        else:
            debug = os.environ.get('DEBUG')

        if mfa_types is not None and not isinstance(mfa_types, str):
            mfa_types = None

        return cls(mfa_types=mfa_types, debug=is_truthy(debug))


@dataclass(frozen=True)
class LoginEvent:
    """The parts of a login event the opt-in hook reads."""

    user_id: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    mfa_opt_in: bool = False
    multifactor: Tuple[str, ...] = ()
    config: OptInConfig = field(default_factory=OptInConfig)

    @classmethod
    def from_dict(cls, event: Mapping[str, Any]) -> 'LoginEvent':
        user = event.get('user') or {}
        metadata = user.get('user_metadata') or {}

        return cls(
            user_id=user.get('user_id'),
            username=user.get('username'),
            email=user.get('email'),
            mfa_opt_in=bool(metadata.get('mfaOptIn')),
            multifactor=tuple(user.get('multifactor') or ()),
            config=OptInConfig.from_secrets(event.get('secrets'))
        )

    @property
    def display_name(self) -> str:
        """Username if it is set and not blank, otherwise the email."""
        if self.username and self.username.strip():
            return self.username.strip()
        return (self.email or '').strip()

    @property
    def is_enrolled(self) -> bool:
        return len(self.multifactor) > 0
