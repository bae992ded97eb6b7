"""
Classified print errors.

Every failure of a print session reaches the caller as a single
PrintError subclass carrying its kind and a message that can be shown
to the cashier verbatim.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Failure taxonomy for a print session."""

    UNSUPPORTED_TRANSPORT = "UnsupportedTransport"
    DEVICE_NOT_FOUND = "DeviceNotFound"
    SECURITY_ERROR = "SecurityError"
    CHARACTERISTIC_UNSUPPORTED = "CharacteristicUnsupported"
    CONNECTION_LOST = "ConnectionLost"
    WRITE_FAILED = "WriteFailed"
    INVALID_REQUEST = "InvalidRequest"


class PrintError(Exception):
    """Base class for classified print failures.

    Attributes:
        kind: Taxonomy kind
        message: User-presentable message
        chunk_number: 1-based number of the chunk that failed, if any
        total_chunks: Number of chunks in the session, if known
    """

    kind: ErrorKind = ErrorKind.WRITE_FAILED
    default_message = "Error al imprimir el recibo."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        chunk_number: Optional[int] = None,
        total_chunks: Optional[int] = None,
    ) -> None:
        self.message = message or self.default_message
        self.chunk_number = chunk_number
        self.total_chunks = total_chunks
        super().__init__(self.message)

    @property
    def partial(self) -> bool:
        """True when some chunks reached the printer before the failure."""
        return self.chunk_number is not None and self.chunk_number > 1

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "chunk_number": self.chunk_number,
            "total_chunks": self.total_chunks,
            "partial": self.partial,
        }


class UnsupportedTransportError(PrintError):
    kind = ErrorKind.UNSUPPORTED_TRANSPORT
    default_message = "Este equipo no tiene Bluetooth disponible."


class DeviceNotFoundError(PrintError):
    kind = ErrorKind.DEVICE_NOT_FOUND
    default_message = (
        "No se encontró ninguna impresora Bluetooth. "
        "Asegúrate de que esté encendida y en modo de emparejamiento."
    )


class SecurityContextError(PrintError):
    kind = ErrorKind.SECURITY_ERROR
    default_message = "El entorno actual no permite usar Bluetooth."


class CharacteristicUnsupportedError(PrintError):
    kind = ErrorKind.CHARACTERISTIC_UNSUPPORTED
    default_message = "La impresora no soporta escritura de datos."


class ConnectionLostError(PrintError):
    kind = ErrorKind.CONNECTION_LOST
    default_message = "La impresora se desconectó. Por favor, reconéctala e intenta de nuevo."


class WriteFailedError(PrintError):
    kind = ErrorKind.WRITE_FAILED
    default_message = (
        "Error al enviar datos a la impresora. "
        "Verifica que esté conectada y encendida."
    )


class InvalidPrintRequestError(PrintError):
    kind = ErrorKind.INVALID_REQUEST
    default_message = "Faltan datos de la venta o del negocio para imprimir."
