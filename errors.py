# errors raised by the shop services, each one maps to an http status


class ShopError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequest(ShopError):
    # missing or malformed field
    status_code = 400


class Unauthorized(ShopError):
    # bad credentials (401) or bad reset secret (403)
    status_code = 401


class NotFound(ShopError):
    status_code = 404


class Conflict(ShopError):
    # unique constraint on email or sweet name
    status_code = 409


class InsufficientStock(ShopError):
    status_code = 400

    def __init__(self, available):
        super().__init__(f'Only {available} items available in stock')
        self.available = available
