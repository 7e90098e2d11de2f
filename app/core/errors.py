class ChatError(Exception):

    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class UnauthorizedError(ChatError):

    status_code = 401


class NotFoundError(ChatError):
    """Conversation is absent or the caller is not one of its participants.

    Both cases share one error so a non-participant cannot tell which
    conversation ids exist.
    """

    status_code = 404


class InvalidArgumentError(ChatError):

    status_code = 400


class StorageError(ChatError):

    status_code = 500
