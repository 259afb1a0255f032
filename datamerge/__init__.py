from datamerge.models.dataset import Dataset
from datamerge.models.request import MergeRequest
from datamerge.models.result import MergeResult, MergeStats
from datamerge.merge import merge_results, merge_rows
from datamerge.tool import run_merge_tool
from datamerge.errors import DataMergeUserError, MissingJoinKeyError

__all__ = ["Dataset", "MergeRequest", "MergeResult", "MergeStats", "merge_results", "merge_rows",
           "run_merge_tool", "DataMergeUserError", "MissingJoinKeyError"]
