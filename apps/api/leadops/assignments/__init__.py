from leadops.assignments.schemas import AssignBulkRequest, AssignmentResult, AssignOneRequest, BulkAssignmentResult

__all__ = ["AssignBulkRequest", "AssignOneRequest", "AssignmentResult", "BulkAssignmentResult"]
