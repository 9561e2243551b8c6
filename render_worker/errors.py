"""
Failure taxonomy for a render job.

Every error raised out of the pipeline is a ``RenderError`` so the
orchestrator can turn it into a ``FAILED`` result with a readable message.
"""


class RenderError(Exception):
    pass


class JobValidationError(RenderError):
    """The request is missing required fields or carries invalid values."""


class WorkspaceError(RenderError):
    """The per-job scratch directory could not be created."""


class CaptureError(RenderError):
    """Browser launch, navigation or library readiness failed."""


class NoFramesCaptured(CaptureError):
    pass


class EncoderError(RenderError):
    def __init__(self, message: str, returncode: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class UploadError(RenderError):
    pass


class WebhookError(RenderError):
    pass
