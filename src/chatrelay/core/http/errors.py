from __future__ import annotations


class UpstreamError(RuntimeError):
    """An outbound call to a third-party service failed after retries.

    ``status_code`` is set when the service answered with a non-success status
    and is ``None`` for transport failures (connect, read, protocol errors).
    """

    def __init__(self, message: str, *, service: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code

    @property
    def transport(self) -> bool:
        return self.status_code is None
