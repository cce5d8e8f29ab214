class SoundboxError(Exception):
    status_code = 500

    def __init__(self, message=None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class Unauthorized(SoundboxError):
    status_code = 401

    def __init__(self, message="Unauthorized"):
        super().__init__(message)


class InvalidInput(SoundboxError):
    status_code = 400


class StoreUnavailable(SoundboxError):
    status_code = 403

    def __init__(self, message="Store not found or disabled"):
        super().__init__(message)


class NotFound(SoundboxError):
    status_code = 404

    def __init__(self, message="Not found"):
        super().__init__(message)


class SchemaUnavailable(SoundboxError):
    pass


class StorageFailure(SoundboxError):
    status_code = 500
