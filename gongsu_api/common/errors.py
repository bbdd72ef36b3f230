# gongsu_api/common/errors.py
from flask import current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from gongsu_api.common.http import fail


class APIError(Exception):
    """Domain error carrying an HTTP status and a machine-readable code."""
    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message, code=None, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload


class InvalidMonth(APIError):
    status_code = 422
    code = "INVALID_MONTH"


class SettlementLocked(APIError):
    status_code = 409
    code = "SETTLEMENT_LOCKED"


class UnmappedPosition(APIError):
    status_code = 422
    code = "UNMAPPED_POSITION"


class BatchWriteError(APIError):
    """A chunked write failed part-way; `committed` rows are already stored."""
    status_code = 500
    code = "BATCH_WRITE_FAILED"

    def __init__(self, message, committed: int, batch_index: int):
        super().__init__(message, payload={"committed": committed, "failed_batch": batch_index})
        self.committed = committed
        self.batch_index = batch_index


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _integrity(e: IntegrityError):
        from gongsu_api.extensions import db
        db.session.rollback()
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR")

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        current_app.logger.exception(e)
        return fail("Internal Server Error", status=500)
