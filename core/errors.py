"""
Business-rule errors.
ConflictError carries a machine code; config.exceptions renders it as
{ ok: false, message, code } with HTTP 409.
"""
from rest_framework import status
from rest_framework.exceptions import APIException

# Package ledger
NO_ACTIVE_HOURS_PACKAGE = 'NO_ACTIVE_HOURS_PACKAGE'
NO_ACTIVE_PACKAGE = 'NO_ACTIVE_PACKAGE'
PKG_NOT_FOUND = 'PKG_NOT_FOUND'
PKG_NOT_HOURS = 'PKG_NOT_HOURS'
PKG_REMAIN_NULL = 'PKG_REMAIN_NULL'
PKG_NOT_ENOUGH = 'PKG_NOT_ENOUGH'
PKG_MODE_MISMATCH = 'PKG_MODE_MISMATCH'
PKG_OVERLAP = 'PKG_OVERLAP'
PKG_NEGATIVE = 'PKG_NEGATIVE'

# Scheduling
AVAIL_CONFLICT = 'AVAIL_CONFLICT'
TIME_CONFLICT = 'TIME_CONFLICT'
ROOM_CONFLICT = 'ROOM_CONFLICT'
DUPLICATE_SESSION = 'DUPLICATE_SESSION'
CANNOT_TEACH = 'CANNOT_TEACH'
CONFLICT = 'CONFLICT'

# Enrollment
ALREADY_ENROLLED = 'ALREADY_ENROLLED'
COURSE_CONFLICT = 'COURSE_CONFLICT'
NOT_ENROLLED = 'NOT_ENROLLED'

# Generic input/business conflicts
INVALID_INPUT = 'INVALID_INPUT'


class ConflictError(APIException):
    """A business rule rejected the request (HTTP 409)."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict'
    default_code = 'conflict'

    def __init__(self, code, message=None, **extra):
        self.error_code = code
        self.extra = extra
        super().__init__(detail=message or code, code=code)
