"""Domain errors raised by services and mapped to HTTP responses in views"""


class SlugAllocationError(Exception):
    """No free slug could be found within the attempt bound"""


class DraftConversionError(Exception):
    """A draft product could not be turned into a catalog product"""


class OrderCreationError(Exception):
    """Order payload referenced products that do not exist or is otherwise invalid"""


class GroqAPIError(Exception):
    """Error returned by the Groq chat completions API"""

    def __init__(self, message, status_code=None, error_type=None):
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type
