"""
Application settings.

Loaded once per process from the environment (and ``.env``) and passed
explicitly to every component; the object is frozen after construction.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Chat channel (Slack)
    SLACK_BOT_TOKEN: Optional[str] = None
    SLACK_CHANNEL_ID: Optional[str] = None

    # Document database (Notion)
    NOTION_TOKEN: Optional[str] = None
    NOTION_DB_ID: Optional[str] = None

    # Ticketing (Jira)
    JIRA_BASE_URL: Optional[str] = None
    JIRA_EMAIL: Optional[str] = None
    JIRA_API_TOKEN: Optional[str] = None
    JIRA_PROJECT_KEY: str = "EXP"

    # Payment processor (Square)
    SQUARE_ACCESS_TOKEN: Optional[str] = None
    SQUARE_BASE_URL: str = "https://connect.squareup.com"
    SQUARE_API_VERSION: str = "2024-01-18"

    # Mock mode replaces every external integration with an in-process stand-in
    MOCK_MODE: bool = True
    MOCK_VERIFY_DELAY: float = 0.5

    # Tool server bundles
    MCP_COMMAND: str = "node"
    MCP_SLACK_PATH: str = "./mcp-servers/slack_web"
    MCP_NOTION_PATH: str = "./mcp-servers/Notion"
    MCP_JIRA_PATH: str = "./mcp-servers/Jira_Integration_API"

    CHANNEL_SCAN_LIMIT: int = 20

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"
        frozen = True

    @property
    def jira_configured(self) -> bool:
        return bool(self.JIRA_BASE_URL and self.JIRA_EMAIL and self.JIRA_API_TOKEN)


@lru_cache
def get_settings() -> Settings:
    return Settings()
