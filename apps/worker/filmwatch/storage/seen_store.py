"""
Seen-set store - the durable record of films already published

The whole set lives in one JSON file that is read fully at start-up and
rewritten fully (temp file + rename) on every commit. Ids are unique and kept
in insertion order so pruning can drop the oldest first.
"""
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from ..exceptions import StoreIOError
from ..logging_config import setup_logging
from ..models import FilmRecord, ListingEntry, SeenRecord, SeenSetDocument
from ..models.film import utcnow

logger = setup_logging(__name__)


class SeenSetStore:
    """JSON-file backed seen-set with a size cap"""

    def __init__(self, path, max_entries: int = 500):
        self.path = Path(path)
        self.max_entries = max_entries
        self._document: Optional[SeenSetDocument] = None
        self._index: Dict[str, SeenRecord] = {}

    @property
    def loaded(self) -> bool:
        return self._document is not None

    @property
    def records(self) -> List[SeenRecord]:
        return list(self._doc.films)

    @property
    def _doc(self) -> SeenSetDocument:
        if self._document is None:
            raise StoreIOError("Seen-set accessed before it was loaded")
        return self._document

    def __len__(self) -> int:
        return len(self._doc.films)

    def __contains__(self, film_id: str) -> bool:
        if self._document is None:
            raise StoreIOError("Seen-set accessed before it was loaded")
        return film_id in self._index

    def initialize(self) -> None:
        """Create the data directory and an empty file if needed, then load"""
        try:
            if not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
                logger.info(f"Created data directory: {self.path.parent}")
            if not self.path.exists():
                self._document = SeenSetDocument()
                self._write()
                logger.info(f"Initialized seen-set file: {self.path}")
        except OSError as e:
            raise StoreIOError(f"Cannot initialize seen-set at {self.path}: {e}") from e

        self.load()

    def load(self) -> SeenSetDocument:
        """Read the file into memory, replacing any in-memory state"""
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            document = SeenSetDocument.model_validate(raw)
        except (OSError, ValueError, ValidationError) as e:
            raise StoreIOError(f"Cannot load seen-set from {self.path}: {e}") from e

        # Earlier files may hold the same id twice; keep its first position
        unique: List[SeenRecord] = []
        index: Dict[str, SeenRecord] = {}
        for record in document.films:
            if record.id not in index:
                index[record.id] = record
                unique.append(record)
        document.films = unique

        self._document = document
        self._index = index
        logger.debug(f"Loaded {len(unique)} films from seen-set")
        return document

    def save(self) -> None:
        """Rewrite the file with the in-memory set"""
        self._doc.last_update = utcnow()
        try:
            self._write()
        except OSError as e:
            raise StoreIOError(f"Cannot write seen-set to {self.path}: {e}") from e
        logger.debug("Seen-set saved successfully")

    def _write(self) -> None:
        payload = self._document.model_dump(mode="json", by_alias=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def has_seen(self, film_id: str) -> bool:
        return film_id in self

    def filter_new(self, entries: Sequence[ListingEntry]) -> List[ListingEntry]:
        """Entries whose id has not been published yet, order kept"""
        new_entries = [entry for entry in entries if entry.id not in self]
        logger.info(f"Filtered films: {len(new_entries)} new, {len(entries) - len(new_entries)} already seen")
        return new_entries

    def add(self, films: Iterable[FilmRecord]) -> int:
        """Append films to the in-memory set; ids already present are ignored"""
        added = 0
        now = utcnow()
        for film in films:
            if film.id in self._index:
                continue
            record = SeenRecord(id=film.id, title=film.title, seen_at=now)
            self._doc.films.append(record)
            self._index[film.id] = record
            added += 1
        return added

    def prune(self, max_entries: Optional[int] = None) -> int:
        """Drop the oldest records beyond the cap from memory; returns how many"""
        cap = self.max_entries if max_entries is None else max_entries
        films = self._doc.films
        if len(films) <= cap:
            return 0

        removed = films[:len(films) - cap]
        self._doc.films = films[len(films) - cap:]
        for record in removed:
            self._index.pop(record.id, None)
        logger.info(f"Pruned {len(removed)} old entries from seen-set")
        return len(removed)

    def commit(self, films: Sequence[FilmRecord]) -> int:
        """Record published films: append, prune to the cap, then one write"""
        if not films:
            logger.debug("No films to mark as seen")
            return 0

        added = self.add(films)
        self.prune()
        self.save()
        logger.info(f"Marked {added} films as seen")
        return added

    def stats(self) -> Dict[str, object]:
        return {
            "total_films": len(self._doc.films),
            "max_films": self.max_entries,
            "last_update": self._doc.last_update.isoformat(),
        }
