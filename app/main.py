"""
Opt-In MFA Portal
FastAPI application served behind an AWS ALB with OIDC authentication.
"""

import os
from typing import Optional

import jwt
import requests
from fastapi import FastAPI, Request

AWS_REGION = os.getenv('AWS_REGION', 'us-west-2')
ALB_PUBLIC_KEY_URL = 'https://public-keys.auth.elb.{region}.amazonaws.com/{kid}'

# ALB signing keys by key id
_alb_public_keys = {}


def get_alb_public_key(kid: str) -> str:
    """Fetch (and cache) the PEM public key the ALB signed with."""
    if kid not in _alb_public_keys:
        response = requests.get(
            ALB_PUBLIC_KEY_URL.format(region=AWS_REGION, kid=kid),
            timeout=2
        )
        response.raise_for_status()
        _alb_public_keys[kid] = response.text
    return _alb_public_keys[kid]


def extract_user_from_alb_header(request: Request) -> Optional[str]:
    """
    Return the signed-in user's email from the ALB OIDC header.

    The ALB passes the user claims as an ES256-signed JWT in
    x-amzn-oidc-data. The regional key endpoint serves keys for every ALB in
    the region, so the token must name this deployment's ALB (ALB_ARN) as
    its signer. Returns None if the header is missing, names another signer
    or does not verify.
    """
    token = request.headers.get('x-amzn-oidc-data')
    if not token:
        return None

    try:
        header = jwt.get_unverified_header(token)
        signer = header.get('signer')
        if not signer or signer != os.getenv('ALB_ARN'):
            print(f"Rejected ALB OIDC header: unexpected signer {signer}")
            return None

        kid = header['kid']
        claims = jwt.decode(token, get_alb_public_key(kid), algorithms=['ES256'])
    except (jwt.PyJWTError, KeyError, requests.RequestException) as e:
        print(f"Rejected ALB OIDC header: {str(e)}")
        return None

    return claims.get('email')


app = FastAPI(title="Opt-In MFA Portal")

from app.opt_in_routes import router as opt_in_router  # noqa: E402

app.include_router(opt_in_router)
