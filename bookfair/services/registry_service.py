"""School registry collaborator — returns clusters matching a substring query.

The production registry lives in the hosted database; this module defines the
interface the resolver depends on and an in-memory implementation backed by a
JSON export of the ``school_clusters`` table.
"""
import json
from pathlib import Path
from typing import Any, Iterable, List, Optional

from bookfair.core.exceptions import RegistryUnavailableError
from bookfair.core.logging import get_logger
from bookfair.schemas.school_schema import SchoolCluster
from bookfair.services.mapper_service import parse_school_rows

logger = get_logger(__name__)


class SchoolRegistry:
    """Interface for school registry lookups; subclasses must implement ``search`` and ``__len__``."""

    def search(self, query: str, normalized_only: bool = False) -> List[SchoolCluster]:
        # Return clusters whose name or normalized name contains query (case-insensitive)
        raise NotImplementedError

    def __len__(self) -> int:
        raise NotImplementedError


class InMemorySchoolRegistry(SchoolRegistry):
    """Registry over an in-memory list of clusters."""

    def __init__(self, schools: Optional[Iterable[SchoolCluster]] = None) -> None:
        self._schools: List[SchoolCluster] = list(schools or [])

    def search(self, query: str, normalized_only: bool = False) -> List[SchoolCluster]:
        needle = (query or "").strip().lower()
        if not needle:
            return []
        results = []
        for school in self._schools:
            if needle in school.normalized_name.lower():
                results.append(school)
            elif not normalized_only and needle in school.name.lower():
                results.append(school)
        return results

    def __len__(self) -> int:
        return len(self._schools)

    @classmethod
    def from_rows(cls, rows: Iterable[dict[str, Any]]) -> "InMemorySchoolRegistry":
        schools, rejected = parse_school_rows(rows)
        if rejected:
            logger.warning(
                "Skipped %d malformed school rows",
                len(rejected),
                extra={"rejected": rejected},
            )
        return cls(schools)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemorySchoolRegistry":
        """Load a JSON array of school_clusters rows."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                rows = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryUnavailableError(f"Could not load school registry from {path}", str(e)) from e

        if not isinstance(rows, list):
            raise RegistryUnavailableError(f"School registry {path} must contain a JSON array")

        registry = cls.from_rows(rows)
        logger.info("Loaded %d school clusters from %s", len(registry), path)
        return registry
