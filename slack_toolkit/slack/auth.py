"""
Slack credential handling

Browser session tokens (xoxc + the `d` cookie value xoxd) are read once from
settings at process start. Absence of credentials is not an error at this
level; tools that require auth report AUTH_REQUIRED instead.
"""
import logging
from typing import Optional, TYPE_CHECKING

from pydantic import BaseModel, Field

from ..config.settings import SlackSettings
from .errors import SlackAuthError, SlackError

if TYPE_CHECKING:
    from .client import SlackClient

logger = logging.getLogger(__name__)


class SlackTokens(BaseModel):
    """Browser session credentials for one workspace"""
    xoxc: str = Field(..., description="Client token (xoxc-...)")
    xoxd: str = Field(..., description="Session cookie value (xoxd-...)")
    team_domain: str = Field(..., description="Workspace domain")

    model_config = {"frozen": True}

    def __repr__(self) -> str:
        return f"SlackTokens(team_domain='{self.team_domain}', xoxc='{self.xoxc[:9]}...')"


class SlackAuthResult(BaseModel):
    """Outcome of validating tokens against auth.test"""
    success: bool
    user_id: Optional[str] = None
    user: Optional[str] = None
    team: Optional[str] = None
    error: Optional[str] = None


class SlackAuth:
    """Extracts and validates Slack credentials"""

    def __init__(self, slack_settings: SlackSettings):
        self._settings = slack_settings

    def extract_tokens(self) -> Optional[SlackTokens]:
        """
        Build tokens from settings

        Returns:
            SlackTokens, or None when any credential is missing

        Raises:
            SlackAuthError: If the tokens are present but have the wrong prefix
        """
        xoxc = self._settings.xoxc_token.strip()
        xoxd = self._settings.xoxd_token.strip()
        team_domain = self._settings.team_domain.strip()

        if not xoxc or not xoxd or not team_domain:
            logger.debug("Slack credentials not configured")
            return None

        if not xoxc.startswith("xoxc-") or not xoxd.startswith("xoxd-"):
            raise SlackAuthError("Invalid token format: expected xoxc-... and xoxd-... tokens")

        return SlackTokens(xoxc=xoxc, xoxd=xoxd, team_domain=team_domain)

    async def validate_tokens(self, client: "SlackClient") -> SlackAuthResult:
        """Check the client's tokens with auth.test"""
        try:
            response = await client.request("auth.test")
        except SlackError as e:
            return SlackAuthResult(success=False, error=f"Authentication failed: {e.message}")

        if not response.get("ok"):
            return SlackAuthResult(success=False, error=f"Slack API error: {response.get('error', 'unknown_error')}")

        logger.info(f"Slack tokens validated for user {response.get('user')} in team {response.get('team')}")
        return SlackAuthResult(
            success=True,
            user_id=response.get("user_id"),
            user=response.get("user"),
            team=response.get("team"),
        )
