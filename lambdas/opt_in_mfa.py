"""
OptInMFA Lambda
Post-login hook that enforces MFA for users who opted in.

Opt-in comes from user_metadata.mfaOptIn. When the event does not carry it
and MFA_OPT_IN_TABLE is set, the preference stored by the opt-in API is
read from DynamoDB instead.

Flow:
- User has not opted in -> nothing to do
- No valid factors configured -> nothing to do
- User already enrolled -> challenge with any of the configured factors
- User not enrolled -> enroll with any of the configured factors
"""

import asyncio
import dataclasses
import json
import os
from enum import Enum
from typing import List, Optional, Protocol

import boto3

from lambdas.factor_specs import as_api_factors, parse_factor_specs
from lambdas.login_event import LoginEvent, has_opt_in_flag


class AuthenticationPort(Protocol):
    """Authentication operations the hook can request."""

    async def challenge_with_any(self, factors: List[dict]) -> None:
        ...

    async def enroll_with_any(self, factors: List[dict]) -> None:
        ...


class Outcome(str, Enum):
    SKIPPED = 'skipped'
    CHALLENGED = 'challenged'
    ENROLLED = 'enrolled'


class EventResponseAuthentication:
    """
    Records the requested authentication command on the event response.

    The runtime reads event['response']['authentication'] after the hook
    returns and runs the challenge or enrollment itself.
    """

    def __init__(self, event: dict):
        self.event = event

    def _record(self, command: str, factors: List[dict]) -> None:
        response = self.event.setdefault('response', {})
        response['authentication'] = {
            'command': command,
            'factors': factors
        }

    async def challenge_with_any(self, factors: List[dict]) -> None:
        self._record('challengeWithAny', factors)

    async def enroll_with_any(self, factors: List[dict]) -> None:
        self._record('enrollWithAny', factors)


async def handle(event: LoginEvent, api: AuthenticationPort) -> Outcome:
    """
    Challenge or enroll an opted-in user with the configured factors.

    Args:
        event: Parsed login event
        api: Authentication operations

    Returns:
        The outcome of the hook for this login

    Raises:
        Whatever the authentication call raises, unchanged
    """
    debug = event.config.debug

    def log(message: str) -> None:
        if debug:
            print(message)

    if not event.mfa_opt_in:
        return Outcome.SKIPPED

    username = event.display_name
    log(f"User {event.user_id} ({username}) has MFA opt-in enabled")

    factors = as_api_factors(parse_factor_specs(event.config.mfa_types))

    if not factors:
        log(f"No valid MFA factors configured, skipping opt-in MFA for {event.user_id} ({username})")
        return Outcome.SKIPPED

    try:
        if event.is_enrolled:
            # Offer every configured factor; the API only presents the ones
            # the user has actually enrolled.
            log(f"Challenge user {event.user_id} ({username}) authentication with {json.dumps(factors)}")
            await api.challenge_with_any(factors)
            outcome = Outcome.CHALLENGED
        else:
            log(f"Enroll {event.user_id} ({username}) with {json.dumps(factors)}")
            await api.enroll_with_any(factors)
            outcome = Outcome.ENROLLED

    except Exception as e:
        log(f"ERROR requesting MFA for {event.user_id} ({username}): {str(e)}")
        raise

    log(f"Completed opt-in MFA for {event.user_id} ({username})")
    return outcome


def get_stored_opt_in(event: LoginEvent) -> Optional[bool]:
    """
    Read the opt-in preference saved through the opt-in API.

    Args:
        event: Parsed login event; the preference is keyed by email

    Returns:
        The stored preference, or None if there is none or it cannot be read
    """
    if not event.email:
        return None

    try:
        dynamodb = boto3.resource('dynamodb')
        table = dynamodb.Table(os.environ['MFA_OPT_IN_TABLE'])
        item = table.get_item(Key={'username': event.email}).get('Item')

    except Exception as e:
        # A preference store outage must not block the login
        if event.config.debug:
            print(f"WARNING: Could not read opt-in preference for {event.user_id}: {str(e)}")
        return None

    if item is None:
        return None
    return bool(item.get('mfa_opt_in'))


def lambda_handler(event, context):
    """
    Run the opt-in MFA hook for one login.

    Args:
        event: Login event from the hosting runtime
        context: Lambda context (unused)

    Returns:
        Modified event with the authentication command set, if any
    """
    login_event = LoginEvent.from_dict(event)
    if not has_opt_in_flag(event) and os.environ.get('MFA_OPT_IN_TABLE'):
        stored = get_stored_opt_in(login_event)
        if stored is not None:
            login_event = dataclasses.replace(login_event, mfa_opt_in=stored)

    asyncio.run(handle(login_event, EventResponseAuthentication(event)))
    return event
