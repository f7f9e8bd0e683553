"""Application errors rendered as ``{"success": false, "error", "message"}``."""


class AppError(Exception):
    status_code = 400
    code = "BAD_REQUEST"
    message = "The request could not be processed."

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        errors: list[dict] | None = None,
    ) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.errors = errors or []
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.code, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationFailed(AppError):
    code = "VALIDATION_FAILED"
    message = "Request data is invalid."


class Unauthorized(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    message = "Authentication required."


class InvalidCredentials(AppError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    message = "Email or password is incorrect."


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"
    message = "You do not have permission to perform this action."


class CannotDeleteSelf(Forbidden):
    code = "CANNOT_DELETE_SELF"
    message = "Admins cannot delete their own account."


class CannotModifySelf(Forbidden):
    code = "CANNOT_MODIFY_SELF"
    message = "Admins cannot change their own role."


class LastAdmin(Forbidden):
    code = "LAST_ADMIN"
    message = "Cannot demote the last admin user."


class LastAdminDelete(Forbidden):
    code = "LAST_ADMIN_DELETE_DENIED"
    message = "Cannot delete the last admin user."


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "The requested resource does not exist."


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    message = "The requested user does not exist."


class FlashcardNotFound(NotFound):
    code = "FLASHCARD_NOT_FOUND"
    message = "The requested flashcard does not exist."


class DuplicateEmail(AppError):
    status_code = 409
    code = "DUPLICATE_EMAIL"
    message = "An account with this email already exists."


class DatabaseUnavailable(AppError):
    status_code = 503
    code = "DATABASE_UNAVAILABLE"
    message = "Database unavailable. Verify DATABASE_URL."
