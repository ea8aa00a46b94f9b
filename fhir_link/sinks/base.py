"""
Base classes for blob storage sinks.

A sink exposes four capabilities: ensure a named container exists, open a
writer to a named blob, write bytes, and commit. Writers buffer everything
and publish it in one step on commit, so a failed run never leaves a
partial blob that looks complete.
"""

from abc import ABC, abstractmethod

from loguru import logger


class BlobExistsError(Exception):
    """The target blob already exists; sinks never overwrite."""
    pass


class BlobWriter(ABC):
    """Buffered write stream to a single blob."""

    def __init__(self, container: str, blob_name: str):
        self.container = container
        self.blob_name = blob_name
        self._chunks: list[bytes] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def size(self) -> int:
        return sum(len(c) for c in self._chunks)

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError(f"write to closed blob writer {self.blob_name}")
        self._chunks.append(bytes(data))
        return len(data)

    def commit(self) -> None:
        """Publish the buffered bytes atomically."""
        if self._closed:
            raise ValueError(f"blob writer {self.blob_name} already closed")
        content = b"".join(self._chunks)
        self._commit(content)
        self._closed = True
        self._chunks = []
        logger.info(f"Committed {self.container}/{self.blob_name} ({len(content):,} bytes)")

    def abort(self) -> None:
        """Drop buffered bytes without publishing anything."""
        if self._closed:
            return
        self._closed = True
        self._chunks = []
        self._abort()
        logger.warning(f"Aborted write to {self.container}/{self.blob_name}")

    def _abort(self) -> None:
        pass

    @abstractmethod
    def _commit(self, content: bytes) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.abort()


class BlobSink(ABC):
    """
    Abstract base class for object storage sinks.

    Subclasses must implement:
    - ensure_container(): Create the container if it does not exist
    - open_writer(): Return a BlobWriter for a new blob
    """

    sink_name: str = None

    @abstractmethod
    def ensure_container(self, container: str) -> bool:
        """
        Make sure ``container`` exists.

        Returns:
            True if it was created by this call, False if it already existed
        """
        pass

    @abstractmethod
    def open_writer(self, container: str, blob_name: str) -> BlobWriter:
        pass
