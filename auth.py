from dataclasses import dataclass
from typing import Callable, Optional
from jose import JWTError, jwt
import logging
import requests

from errors import BookingError, ErrorKind


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None


# token -> Identity, raising BookingError(UNAUTHORIZED) on rejection
IdentityVerifier = Callable[[str], Identity]


def _unauthorized(message: str = "Invalid token") -> BookingError:
    return BookingError(ErrorKind.UNAUTHORIZED, message)


class JWTVerifier:
    """Checks HS256 access tokens signed with the identity provider's secret."""

    def __init__(self, secret: str, audience: Optional[str] = None, algorithm: str = "HS256"):
        self.secret = secret
        self.audience = audience
        self.algorithm = algorithm

    def __call__(self, token: str) -> Identity:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as e:
            logging.warning(f"Token rejected: {e}")
            raise _unauthorized()
        subject = payload.get("sub")
        if not subject:
            logging.warning("Token rejected: missing sub claim")
            raise _unauthorized()
        return Identity(user_id=str(subject), email=payload.get("email"))


class RemoteUserVerifier:
    """Asks the identity provider who the token belongs to, bounded by timeout."""

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def __call__(self, token: str) -> Identity:
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        try:
            resp = requests.get(f"{self.base_url}/auth/v1/user", headers=headers, timeout=self.timeout)
        except requests.Timeout:
            logging.error(f"Identity check timed out after {self.timeout}s")
            raise _unauthorized("Invalid token or auth service error")
        except requests.RequestException as e:
            logging.error(f"Identity check failed: {e}")
            raise _unauthorized("Invalid token or auth service error")
        if resp.status_code != 200:
            logging.warning(f"Identity provider rejected token ({resp.status_code})")
            raise _unauthorized()
        try:
            user = resp.json()
        except ValueError:
            raise _unauthorized("Invalid token or auth service error")
        if not isinstance(user, dict) or not user.get("id"):
            raise _unauthorized()
        return Identity(user_id=str(user["id"]), email=user.get("email"))


def reject_all(token: str) -> Identity:
    raise _unauthorized("Authentication is not configured")


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def authenticate(
    verifier: IdentityVerifier,
    token: Optional[str],
    required: bool,
) -> Optional[Identity]:
    """Verify the caller; without a requirement, failures only get logged."""
    if not token:
        if required:
            raise _unauthorized("Authentication required")
        logging.info("No access token provided, continuing without identity")
        return None
    try:
        return verifier(token)
    except BookingError:
        if required:
            raise
        logging.info("Token validation failed, continuing without identity")
        return None
