"""
lambda_configuration.exceptions — Configuration access errors.

KMS "key not found" failures are deliberately absent: they surface as the
original botocore ClientError (code NotFoundException) after being logged.
"""


class ConfigurationError(Exception):
    """Base class for lambda-configuration errors."""


class DocumentNotFound(ConfigurationError):
    """
    Raised by direct-mode reads when the configuration document does not exist.

    A document that exists but lacks the requested path is not an error:
    the read returns None instead.

    Attributes:
        table_name:    DynamoDB table that was queried.
        document_name: Document (configName) that was not found.
    """

    def __init__(self, *, table_name: str, document_name: str) -> None:
        self.table_name = table_name
        self.document_name = document_name
        super().__init__(f"Requested document {document_name!r} not found in table {table_name!r}")


class UsageError(ConfigurationError):
    """Raised before any network call for a malformed call pattern."""


class CoreInvocationError(ConfigurationError):
    """
    Raised when the core configuration function reports a FunctionError.

    Attributes:
        function_name: Core Lambda function that was invoked.
        error_type:    errorType reported by the function, if any.
        error_message: errorMessage reported by the function, if any.
    """

    def __init__(
        self,
        *,
        function_name: str,
        error_type: str | None = None,
        error_message: str | None = None,
    ) -> None:
        self.function_name = function_name
        self.error_type = error_type
        self.error_message = error_message
        super().__init__(
            f"Core function {function_name!r} failed: "
            f"{error_type or 'Unhandled'}: {error_message or 'no error message'}"
        )
