"""Error taxonomy shared by the engine, the application services and interfaces."""

from __future__ import annotations


class MasteringEngineError(Exception):
    """Base error carrying a stable machine code and a human-readable message."""

    code = "engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class DecodeError(MasteringEngineError, ValueError):
    """Source bytes could not be decoded into PCM."""

    code = "decode_failed"


class NothingToProcessError(MasteringEngineError, ValueError):
    """An operation was invoked without an input buffer."""

    code = "nothing_to_process"

    def __init__(self, message: str = "Nothing to process: no audio buffer loaded.") -> None:
        super().__init__(message)


class ProcessingError(MasteringEngineError, RuntimeError):
    """Rendering or encoding failed part-way through."""

    code = "processing_failed"


class RenderBusyError(MasteringEngineError, RuntimeError):
    """A render was requested for a buffer that is already rendering."""

    code = "busy"

    def __init__(self, message: str = "A render is already in progress for this buffer.") -> None:
        super().__init__(message)


class EncodingUnavailableError(MasteringEngineError, RuntimeError):
    """The MP3 encoder backend cannot be used."""

    code = "encoding_unavailable"


class InvalidParameterError(MasteringEngineError, ValueError):
    """A caller-supplied value is outside the documented contract."""

    code = "invalid_parameter"
