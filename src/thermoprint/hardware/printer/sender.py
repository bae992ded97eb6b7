"""Chunked delivery of an encoded receipt over a negotiated connection.

The printer characteristic accepts one bounded write at a time, so the
stream is split into chunks and written strictly in order, each write
awaited before the next one starts.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from thermoprint.config.settings import PrinterSettings
from thermoprint.core.errors import ConnectionLostError, WriteFailedError
from thermoprint.hardware.base import GattOperationError, HostDisconnectedError
from thermoprint.hardware.printer.negotiator import NegotiatedConnection, WriteMode

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 512

# Called with (chunks_sent, total_chunks) after every accepted chunk
ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of the stream; `index` is its 0-based position."""

    index: int
    data: bytes

    @property
    def number(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class SendReport:
    """Outcome of a completed send."""

    chunks_sent: int
    total_chunks: int
    bytes_sent: int
    write_mode: WriteMode
    switched_mode: bool


def chunk_stream(data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[Chunk]:
    """Split a byte stream into ordered, non-overlapping chunks.

    Concatenating the chunks' data in index order gives back `data`.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return [
        Chunk(index=i, data=bytes(data[offset:offset + chunk_size]))
        for i, offset in enumerate(range(0, len(data), chunk_size))
    ]


class ChunkSender:
    """Sends an encoded stream chunk by chunk.

    A transport-level write failure may switch the write mode once per
    session and retry the same chunk. A failure after that switch ends
    the session.
    """

    def __init__(self, settings: Optional[PrinterSettings] = None):
        self._settings = settings or PrinterSettings()

    def _delay_for(self, mode: WriteMode) -> float:
        if mode is WriteMode.UNACKNOWLEDGED:
            return self._settings.unacknowledged_delay
        return self._settings.acknowledged_delay

    async def send(
        self,
        connection: NegotiatedConnection,
        data: bytes,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SendReport:
        """Send `data` to the printer.

        Args:
            connection: Negotiated printer connection
            data: Encoded receipt stream
            on_progress: Optional callback after each accepted chunk

        Returns:
            SendReport for the completed transmission

        Raises:
            ConnectionLostError: The printer disconnected before or during a chunk
            WriteFailedError: A chunk could not be written
        """
        chunks = chunk_stream(data, self._settings.chunk_size)
        total = len(chunks)
        mode = connection.write_mode
        switched = False

        logger.info(f"Sending {total} chunks ({len(data)} bytes) using {mode.value} writes")

        for chunk in chunks:
            if not connection.is_connected:
                logger.error(f"Printer disconnected before chunk {chunk.number}/{total}")
                raise ConnectionLostError(
                    f"La impresora se desconectó durante la impresión (fragmento {chunk.number} de {total}).",
                    chunk_number=chunk.number,
                    total_chunks=total,
                )

            delay = self._delay_for(mode)
            try:
                await self._write(connection, chunk, mode, total)
            except GattOperationError as e:
                alternate = connection.alternate_mode(mode)
                if switched or alternate is None:
                    logger.error(f"Chunk {chunk.number}/{total} failed: {e}")
                    raise self._write_failed(chunk, total) from e

                logger.warning(
                    f"Chunk {chunk.number}/{total} failed with {mode.value} write ({e}), "
                    f"switching to {alternate.value}"
                )
                mode = alternate
                switched = True
                try:
                    await self._write(connection, chunk, mode, total)
                except GattOperationError as retry_error:
                    logger.error(f"Retry of chunk {chunk.number}/{total} failed: {retry_error}")
                    raise self._write_failed(chunk, total) from retry_error
                delay = self._settings.fallback_delay

            if on_progress:
                on_progress(chunk.number, total)

            # Flow control for the printer's input buffer
            if chunk.number < total:
                await asyncio.sleep(delay)

        logger.info("All chunks sent")

        # Let the printer finish before the caller may tear the link down
        await asyncio.sleep(self._settings.settle_delay)

        return SendReport(
            chunks_sent=total,
            total_chunks=total,
            bytes_sent=len(data),
            write_mode=mode,
            switched_mode=switched,
        )

    async def _write(
        self,
        connection: NegotiatedConnection,
        chunk: Chunk,
        mode: WriteMode,
        total: int,
    ) -> None:
        try:
            await connection.characteristic.write(chunk.data, with_response=mode.with_response)
        except HostDisconnectedError as e:
            logger.error(f"Printer disconnected while writing chunk {chunk.number}/{total}")
            raise ConnectionLostError(
                "La impresora se desconectó. Por favor, reconéctala e intenta de nuevo.",
                chunk_number=chunk.number,
                total_chunks=total,
            ) from e
        except GattOperationError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error writing chunk {chunk.number}/{total}: {e}")
            raise self._write_failed(chunk, total) from e

    def _write_failed(self, chunk: Chunk, total: int) -> WriteFailedError:
        if chunk.number == 1:
            message = None
        else:
            message = (
                f"Error durante la impresión en el fragmento {chunk.number}. "
                "La impresora puede haberse desconectado."
            )
        return WriteFailedError(message, chunk_number=chunk.number, total_chunks=total)
