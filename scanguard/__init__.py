"""scanguard - quality scan orchestration for Gitea repositories and SonarQube."""

__version__ = "1.0.0"
