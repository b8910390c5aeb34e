"""
Application configuration management.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Settings loaded from environment variables and an optional .env file."""
    
    # Azure DevOps
    azure_devops_token: Optional[str] = None
    azure_devops_org: Optional[str] = None
    azure_devops_project: Optional[str] = None
    azure_devops_repo: Optional[str] = None
    azure_devops_pr_id: Optional[str] = None
    
    # Review agent
    claude_path: Optional[str] = None  # Explicit executable, skips lookup
    
    # Application
    log_level: str = "WARNING"
    
    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
