from dataclasses import dataclass
from typing import Optional

import jwt
from flask import current_app, request

from errors import Unauthorized


@dataclass(frozen=True)
class Identity:
    """Who is calling, as vouched for by the identity provider."""

    user_id: str
    is_member: bool = False
    email: Optional[str] = None
    name: Optional[str] = None


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            current_app.config["IDENTITY_JWT_SECRET"],
            algorithms=[current_app.config["IDENTITY_JWT_ALGORITHM"]],
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized()


def identity_from_request() -> Identity:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized()

    claims = decode_token(token.strip())
    user_id = claims.get("sub")
    if not user_id:
        raise Unauthorized()

    return Identity(
        user_id=str(user_id),
        is_member=claims.get("plan") == current_app.config["MEMBER_PLAN"],
        email=claims.get("email"),
        name=claims.get("name"),
    )
