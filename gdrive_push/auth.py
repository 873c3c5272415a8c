"""Access token resolution.

Obtaining the token (OAuth consent, refresh) happens outside this tool;
we only pick it up from the command line, the environment or the config
file.
"""

from typing import Optional

from .config import ACCESS_TOKEN_KEY, config
from .exceptions import GDriveConfigError


def require_access_token(access_token: Optional[str] = None) -> str:
    """Return an access token or fail with setup instructions.

    Args:
        access_token: Token given on the command line, if any

    Returns:
        The access token to use

    Raises:
        GDriveConfigError: If no token can be found
    """
    token = access_token or config.access_token
    if not token:
        raise GDriveConfigError(
            "Access token not configured. Pass --access-token, set the "
            f"{ACCESS_TOKEN_KEY} environment variable or run 'gdrive-push init'."
        )
    return token
