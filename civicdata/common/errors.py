"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class MissingCredentialError(ConfigError):
    """Raised when a strategy's credential environment variable is unset."""

    error_code = "AUTH_MISSING"


class ContractError(PipelineError):
    """Raised when strict output contracts are broken."""

    error_code = "CONTRACT_ERROR"


class AcquisitionError(PipelineError):
    """Raised when a single strategy attempt cannot produce data."""

    error_code = "ACQUISITION_ERROR"


class NetworkError(AcquisitionError):
    """Connection failure or request timeout."""

    error_code = "NETWORK_ERROR"


class HTTPError(AcquisitionError):
    """Upstream answered with a non-2xx status."""

    error_code = "HTTP_ERROR"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RetryableHTTPError(HTTPError):
    pass


class SchemaError(AcquisitionError):
    """Response body is unparseable or not the expected shape."""

    error_code = "SCHEMA_ERROR"


class RecordError(PipelineError):
    """Base class for failures scoped to a single raw record."""

    error_code = "RECORD_ERROR"


class ValidationError(RecordError):
    """Unresolvable borough, missing required field, or broken record invariant."""

    error_code = "VALIDATION_ERROR"


class MetricError(RecordError):
    """Bad input to a derived metric calculator."""

    error_code = "METRIC_ERROR"
