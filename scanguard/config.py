from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "scanguard"
    API_VERSION: str = "v1"
    ENV: str = "dev"  # Environment: "dev", "staging", "prod"
    LOG_LEVEL: Optional[str] = None  # Overrides the ENV-derived level when set
    OUTPUT_FORMAT: str = "text"  # "text" or "json"

    # Run inputs (usually provided by the CI job environment)
    BR_OWNER: Optional[str] = None
    BR_REPO: Optional[str] = None
    BR_BRANCH: Optional[str] = None
    BR_PR_NUMBER: Optional[int] = None

    # Gitea
    GITEA_URL: str = "http://localhost:3000"
    GITEA_TOKEN: str = ""
    GITEA_API_VERSION: str = "v1"
    GITEA_BASE_BRANCH: str = "main"  # Base for merge-base lookup of feature branches
    GITEA_START_TAG: str = "sq-start"  # Marks the first commit to scan on main/master

    # SonarQube
    SONAR_HOST_URL: str = "http://localhost:9000"
    SONAR_TOKEN: str = ""
    SONAR_PROJECT_VISIBILITY: str = "private"
    SONAR_DISABLE_BRANCH_ANALYSIS: bool = True  # Community edition has no branch support
    SONAR_SCANNER_HOME: Optional[str] = None
    SONAR_SOURCE_DIR: str = "."  # Git checkout the scanner analyses
    SONAR_WORKTREES_DIR: Optional[str] = None  # Defaults to a temp dir
    SONAR_SCANNER_TIMEOUT_SECONDS: int = 1800

    # --- Completion polling ---
    SONAR_POLL_INTERVAL_SECONDS: float = 5.0
    SONAR_POLL_MAX_WAIT_SECONDS: float = 300.0  # Upper bound per submitted scan

    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Optional cross-run exclusion on a project key
    SCAN_LOCK_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"
    SCAN_LOCK_TIMEOUT_SECONDS: Optional[int] = None  # Derived from scanner and poll limits when unset
    SCAN_LOCK_BLOCKING_TIMEOUT_SECONDS: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
