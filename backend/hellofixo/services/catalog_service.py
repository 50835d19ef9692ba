"""
Category and problem catalog.

Categories live in the hosted ``categories`` table with their problems
embedded through the ``problems`` relation.
"""
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from hellofixo.clients.supabase import SupabaseGateway
from hellofixo.lib.logging import get_logger
from hellofixo.models.catalog import Problem, ServiceCategory

logger = get_logger(__name__)

# Problems shown before the catch-all "Other" entry
PRIMARY_PROBLEM_LIMIT = 3


class CatalogService:
    """Reads categories and problems from the hosted database."""

    def __init__(self, gateway: SupabaseGateway):
        self.gateway = gateway

    async def list_categories(self) -> List[ServiceCategory]:
        """All categories ordered by ``sort_order``."""
        rows = await self.gateway.select("categories", order="sort_order")
        return [ServiceCategory.model_validate(row) for row in rows]

    async def get_category(self, slug: str) -> Optional[ServiceCategory]:
        """
        Category with its problems, or None when the slug is unknown.

        Raises:
            ValueError: If the stored row does not match the expected shape
        """
        row = await self.gateway.select_one(
            "categories",
            filters={"slug": f"eq.{slug}"},
            columns="*,problems(*)",
        )
        if row is None:
            logger.info(f"Category not found: {slug}")
            return None
        try:
            return ServiceCategory.model_validate(row)
        except ValidationError as e:
            logger.error(f"Malformed category row for {slug}: {e}")
            raise ValueError(f"Malformed category '{slug}'") from e


def display_problems(category: ServiceCategory) -> List[Problem]:
    """
    Problems in the order the picker shows them: up to three regular ones,
    then the "Other / Not sure" problem if the category has one.
    """
    other = next((p for p in category.problems if p.is_other), None)
    primary = [p for p in category.problems if other is None or p.id != other.id]
    return primary[:PRIMARY_PROBLEM_LIMIT] + ([other] if other else [])


def parse_problem_ids(raw: Optional[str]) -> List[str]:
    """Split a comma-separated id list (``?problems=1,4``), dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def select_problems(category: ServiceCategory, problem_ids: Iterable[str]) -> List[Problem]:
    """Problems of ``category`` whose id is listed, in catalog order. Unknown ids are ignored."""
    wanted = set(problem_ids)
    return [p for p in category.problems if p.id in wanted]


class ProblemSelection:
    """
    The customer's picked problems, keyed by id.

    Toggling a problem adds it when absent and removes it when present, so
    toggling the same problem twice leaves the selection unchanged.
    """

    def __init__(self, problems: Iterable[Problem] = ()):
        self._selected: Dict[str, Problem] = {}
        for problem in problems:
            self._selected[problem.id] = problem

    def toggle(self, problem: Problem) -> bool:
        """Flip ``problem``'s membership. Returns True if it is now selected."""
        if problem.id in self._selected:
            del self._selected[problem.id]
            return False
        self._selected[problem.id] = problem
        return True

    def __contains__(self, problem_id: str) -> bool:
        return problem_id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    @property
    def ids(self) -> List[str]:
        return list(self._selected)

    @property
    def problems(self) -> List[Problem]:
        return list(self._selected.values())

    def as_query(self) -> str:
        """Comma-separated ids for the estimate/details pages."""
        return ",".join(self._selected)
