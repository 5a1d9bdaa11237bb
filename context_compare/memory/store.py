import logging
import threading
import time
import uuid

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Dict, Optional


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Document:
    id: int
    filename: str
    path: Path
    content: str
    uploaded_at: datetime = field(default_factory=_utcnow)

    @property
    def size(self) -> int:
        return len(self.content)


class DocumentStore:
    """
    Ordered, append-only in-memory document list.

    IDs are list positions, so they stay sequential from 0 until reset.
    Every document is backed by the uploaded file on disk.
    """

    def __init__(self, upload_dir: Path):

        self._upload_dir = Path(upload_dir)
        self._documents: List[Document] = []
        self._lock = threading.Lock()

        logger.info(
            "DocumentStore initialized",
            extra={"upload_dir": str(self._upload_dir)},
        )

    # ============================================================
    # INGESTION
    # ============================================================

    def save_upload(self, filename: str, data: bytes) -> Document:
        """
        Write the raw bytes to the upload directory, then read them back
        as the document content.
        """

        self._upload_dir.mkdir(parents=True, exist_ok=True)

        file_path = self._upload_dir / (
            f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{Path(filename).name}"
        )

        with file_path.open("wb") as buffer:
            buffer.write(data)

        try:
            content = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            file_path.unlink(missing_ok=True)
            raise

        return self.add(filename=filename, path=file_path, content=content)

    def add(self, filename: str, path: Path, content: str) -> Document:

        with self._lock:

            doc = Document(
                id=len(self._documents),
                filename=filename,
                path=Path(path),
                content=content,
            )

            self._documents.append(doc)

        logger.info(
            "Document stored",
            extra={"doc_id": doc.id, "doc_filename": filename, "size": doc.size},
        )

        return doc

    # ============================================================
    # LOOKUP
    # ============================================================

    def get(self, doc_id) -> Optional[Document]:
        """Return the document with this ID, or None for anything unknown."""

        if isinstance(doc_id, bool) or not isinstance(doc_id, int):
            return None

        documents = self._documents

        if 0 <= doc_id < len(documents):
            return documents[doc_id]

        return None

    def list(self) -> List[Document]:
        return list(self._documents)

    def index(self) -> List[Dict]:
        """Lightweight listing for selection prompts; content excluded."""

        return [
            {"id": d.id, "filename": d.filename, "size": d.size}
            for d in self._documents
        ]

    def total_characters(self) -> int:
        return sum(d.size for d in self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    # ============================================================
    # RESET
    # ============================================================

    def clear(self) -> int:
        """
        Delete every backing file and forget all documents.

        Files that are already gone are skipped; the reset still completes.
        Returns the number of files actually deleted.
        """

        with self._lock:

            documents = self._documents
            self._documents = []

        deleted = 0

        for doc in documents:

            try:

                doc.path.unlink()
                deleted += 1

            except FileNotFoundError:

                logger.info(
                    "Upload already removed",
                    extra={"doc_id": doc.id, "path": str(doc.path)},
                )

            except OSError as e:

                logger.warning(
                    "Upload delete failed",
                    extra={"doc_id": doc.id, "path": str(doc.path), "error": str(e)},
                )

        logger.info(
            "DocumentStore cleared",
            extra={"documents": len(documents), "files_deleted": deleted},
        )

        return deleted
