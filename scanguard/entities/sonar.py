"""
SonarQube entities - projects, analyses and compute-engine tasks.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field

from .enums import QualityGateStatus


class SonarProject(BaseModel):
    key: str
    name: str = ""
    visibility: Optional[str] = None


class AnalysisRecord(BaseModel):
    """A past analysis of a project, used only to decide what is already scanned."""

    analysis_id: str = Field(..., description="SonarQube analysis key")
    revision: Optional[str] = Field(None, description="Full SCM revision that was analysed")
    date: Optional[str] = None
    project_version: Optional[str] = None


class ScanSubmission(BaseModel):
    task_id: str = Field(..., description="Compute-engine task id returned by the scanner")
    project_key: str
    branch: str
    properties: Dict[str, str] = Field(default_factory=dict)


class TaskStatus(BaseModel):
    """
    Snapshot of a compute-engine task.

    ``status`` stays a raw string: values outside the known lifecycle are a
    protocol violation the poller has to see, not something to coerce here.
    """

    task_id: str
    status: str
    analysis_id: Optional[str] = None
    error_message: Optional[str] = None


class QualityGateVerdict(BaseModel):
    project_key: str
    status: QualityGateStatus
