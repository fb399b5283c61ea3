"""
MFA Opt-In Routes
Lets a signed-in user turn opt-in MFA on or off, and shows which factors
the login hook will offer.
"""

import os

import boto3
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from lambdas.factor_specs import as_api_factors, parse_factor_specs

# Create router
router = APIRouter()


def require_auth(request: Request):
    """Extract user email from ALB headers."""
    from app.main import extract_user_from_alb_header
    email = extract_user_from_alb_header(request)
    if not email:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return email


def get_opt_in_table():
    dynamodb = boto3.resource('dynamodb')
    return dynamodb.Table(os.environ['MFA_OPT_IN_TABLE'])


@router.get("/api/mfa/opt-in")
async def get_opt_in_status(request: Request):
    """
    Check whether the user has opted in to MFA.
    """
    email = require_auth(request)

    try:
        item = get_opt_in_table().get_item(Key={'username': email}).get('Item')
    except Exception as e:
        print(f"ERROR reading opt-in preference for {email}: {str(e)}")
        raise

    return JSONResponse({
        "email": email,
        "mfa_opt_in": bool(item and item.get('mfa_opt_in'))
    })


@router.post("/api/mfa/opt-in")
async def set_opt_in_status(request: Request):
    """
    Turn opt-in MFA on or off for the user.
    The login hook reads it at the next login when the login event carries
    no mfaOptIn flag of its own.
    """
    email = require_auth(request)

    try:
        body = await request.json()
        enabled = body.get("enabled")
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid request body")

    if not isinstance(enabled, bool):
        return JSONResponse({
            "success": False,
            "error": "'enabled' must be true or false"
        }, status_code=400)

    try:
        get_opt_in_table().put_item(
            Item={
                'username': email,
                'mfa_opt_in': enabled
            }
        )
    except Exception as e:
        print(f"ERROR storing opt-in preference for {email}: {str(e)}")
        raise

    return JSONResponse({
        "success": True,
        "mfa_opt_in": enabled
    })


@router.get("/api/mfa/factors")
async def get_configured_factors(request: Request):
    """
    Show the factors the login hook will offer.
    An empty list means opt-in MFA is inert because of the configuration.
    """
    require_auth(request)

    configured = os.environ.get('MFA_TYPES')

    return JSONResponse({
        "configured": configured,
        "factors": as_api_factors(parse_factor_specs(configured))
    })
