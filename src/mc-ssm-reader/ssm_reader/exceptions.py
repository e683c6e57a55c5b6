"""Errors raised while reading a parameter from another region."""


class CrossRegionReadError(Exception):
    """A cross-region parameter read failed.

    Parameters
    ----------
    parameter_name : str
        The SSM parameter that was being read.
    region : str
        The region the parameter was read from.
    message : str
        What went wrong.
    """

    def __init__(self, parameter_name: str, region: str, message: str) -> None:
        self.parameter_name = parameter_name
        self.region = region
        super().__init__(message)


class ParameterNotFoundError(CrossRegionReadError):
    """The parameter does not exist (yet) in the source region."""

    def __init__(self, parameter_name: str, region: str) -> None:
        super().__init__(
            parameter_name,
            region,
            f"SSM parameter '{parameter_name}' was not found in region "
            f"{region}. The stack that publishes it has probably not been "
            "deployed yet, or the parameter name is misspelled.",
        )


class ParameterAccessDeniedError(CrossRegionReadError):
    """The reader is not allowed to read the parameter."""

    def __init__(self, parameter_name: str, region: str, code: str) -> None:
        super().__init__(
            parameter_name,
            region,
            f"Access denied ({code}) reading SSM parameter "
            f"'{parameter_name}' in region {region}. Check that the reader's "
            "role is granted ssm:GetParameter on that parameter's ARN.",
        )


class ParameterStoreUnreachableError(CrossRegionReadError):
    """Parameter Store could not be reached within the retry budget."""

    def __init__(
        self, parameter_name: str, region: str, attempts: int, reason: str
    ) -> None:
        self.attempts = attempts
        super().__init__(
            parameter_name,
            region,
            f"Could not read SSM parameter '{parameter_name}' in region "
            f"{region} after {attempts} attempt(s): {reason}",
        )


class MalformedEventError(ValueError):
    """The custom resource event is missing fields or carries bad properties."""
