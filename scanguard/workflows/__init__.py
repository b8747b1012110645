from .branch_scan import BranchScanWorkflow
from .pr_scan import PRScanWorkflow

__all__ = ["BranchScanWorkflow", "PRScanWorkflow"]
