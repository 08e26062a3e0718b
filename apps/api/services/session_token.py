"""Verification of the signed session issued by the SocialSync web app."""

from jose import JWTError, jwt

from config import settings


SESSION_TOKEN_TYPE = "socialsync_session"
SESSION_COOKIE = "session"


def session_subject(token: str) -> str:
    """Return the user id a valid session token was issued for.

    Raises ``ValueError`` for a bad signature, an expired token, a token of
    another type, or one without a subject.
    """
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired session token.") from exc

    if claims.get("type") != SESSION_TOKEN_TYPE:
        raise ValueError("Not a SocialSync session token.")
    subject = str(claims.get("sub") or "").strip()
    if not subject:
        raise ValueError("Session token missing subject.")
    return subject
