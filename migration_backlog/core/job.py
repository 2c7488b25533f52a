"""
Job Entity
One (collection, sub-collection) unit of migration work with its document count
"""
from dataclasses import dataclass
from typing import Any, Dict, Union

ID_SEPARATOR = ":"


def _parse_count(count: Any) -> int:
    """Parse a count coming from the store or the source system"""
    if count is None:
        return 0
    if isinstance(count, bytes):
        count = count.decode()
    if isinstance(count, bool):
        raise ValueError(f"Invalid document count: {count!r}")
    try:
        value = int(count)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid document count: {count!r}") from None
    if value < 0:
        raise ValueError(f"Document count must be >= 0, got {value}")
    return value


@dataclass(eq=False)
class Job:
    """
    A unit of migration work

    Identity is the id ``<collection>:<subcollection>``; two jobs are equal
    iff their ids are equal. ``count`` is filled in by count enrichment.
    """
    collection: str
    subcollection: str
    count: int = 0

    def __post_init__(self):
        for attr in ("collection", "subcollection"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value:
                raise ValueError(f"Job {attr} must be a non-empty string, got {value!r}")
            if ID_SEPARATOR in value:
                raise ValueError(f"Job {attr} '{value}' must not contain '{ID_SEPARATOR}'")
        self.count = _parse_count(self.count)

    @property
    def id(self) -> str:
        return f"{self.collection}{ID_SEPARATOR}{self.subcollection}"

    def get_id(self) -> str:
        return self.id

    @classmethod
    def from_id(cls, job_id: Union[str, bytes], count: Any = None) -> "Job":
        """Rebuild a job from its id and the count stored alongside it"""
        if isinstance(job_id, bytes):
            job_id = job_id.decode()
        collection, separator, subcollection = job_id.partition(ID_SEPARATOR)
        if not separator:
            raise ValueError(f"Invalid job id: {job_id!r}")
        return cls(collection, subcollection, _parse_count(count))

    @classmethod
    def create(cls, value: Union["Job", Dict[str, Any]]) -> "Job":
        """
        Validating factory

        Accepts an existing Job or a mapping with ``collection``,
        ``subcollection`` and optionally ``count``. Anything else is rejected.
        """
        if isinstance(value, Job):
            return value
        if not isinstance(value, dict):
            raise TypeError(f"Cannot create a job from {type(value).__name__}")

        missing = [key for key in ("collection", "subcollection") if key not in value]
        if missing:
            raise ValueError(f"Job definition is missing: {', '.join(missing)}")

        unknown = set(value) - {"collection", "subcollection", "count"}
        if unknown:
            raise ValueError(f"Unknown job fields: {', '.join(sorted(unknown))}")

        return cls(value["collection"], value["subcollection"], value.get("count", 0))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "subcollection": self.subcollection,
            "count": self.count,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Job):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return f"{self.id} ({self.count:,} docs)"

