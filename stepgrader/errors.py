"""Exceptions raised by the grading pipeline."""


class StepGraderError(Exception):
    """Base class for all stepgrader errors."""


class ConfigurationError(StepGraderError):
    """Missing or invalid configuration, e.g. no API credential."""


class EncodingError(StepGraderError):
    """A document's bytes could not be read or are not a supported type."""


class GradingError(StepGraderError):
    """The call to the external model failed or returned nothing usable."""


class InvalidTransitionError(StepGraderError):
    """A submission status change that the lifecycle does not allow."""


class RegistryError(StepGraderError):
    """Base class for submission registry errors."""


class SubmissionNotFoundError(RegistryError, KeyError):
    """No submission with the requested id."""

    def __str__(self):
        return Exception.__str__(self)


class SubmissionLockedError(RegistryError):
    """The submission is being graded and cannot be edited."""


class RegistryLockedError(RegistryError):
    """A batch is running and the shared reference documents are frozen."""


class EmptyBatchError(RegistryError):
    """No reference documents, or no submission with at least one page."""
