"""Resolve report projects to resource groups through their customer."""

import logging
from typing import Callable, Dict, List, Optional, Tuple, TypedDict

from .mappings import MappingSnapshot

logger = logging.getLogger(__name__)

UNRESOLVED_PROJECT = "project"
UNRESOLVED_CUSTOMER = "customer"


class UnresolvedEntry(TypedDict):
    """A project or customer with no mapping entry."""
    kind: str
    identifier: str
    project: str
    rows: int


class GroupResolver:
    """
    Resolve a project name into a resource group.

    Customers are not part of the report, and resource groups are decided
    by customer, so every lookup goes project -> customer -> resource group.
    Gaps are recorded once per identifier with the number of rows that hit
    them.
    """

    def __init__(
        self,
        snapshot: MappingSnapshot,
        on_unknown_project: Optional[Callable[[str], None]] = None
    ):
        """
        Initialize the resolver.

        Parameters
        ----------
        snapshot : MappingSnapshot
            Lookup tables for this run
        on_unknown_project : Optional[Callable[[str], None]]
            Called once for each project missing from the project map
        """
        self.snapshot = snapshot
        self.on_unknown_project = on_unknown_project
        self._resolved: Dict[str, Optional[str]] = {}
        self._unresolved: Dict[Tuple[str, str], UnresolvedEntry] = {}

    @property
    def unresolved(self) -> List[UnresolvedEntry]:
        """Unresolved entries in the order they were first met."""
        return list(self._unresolved.values())

    def _record(self, kind: str, identifier: str, project: str) -> bool:
        key = (kind, identifier)
        if key in self._unresolved:
            self._unresolved[key]['rows'] += 1
            return False
        self._unresolved[key] = UnresolvedEntry(
            kind=kind,
            identifier=identifier,
            project=project,
            rows=1
        )
        return True

    def resolve_customer(self, project: str) -> Optional[str]:
        """Resolve a project into a customer."""
        customer = self.snapshot.proj_cust_map.get(project)
        if customer is None:
            if self._record(UNRESOLVED_PROJECT, project, project):
                logger.warning("No mapping for project: %s", project)
                if self.on_unknown_project is not None:
                    self.on_unknown_project(project)
        return customer

    def resolve_group(self, project: str) -> Optional[str]:
        """
        Resolve a project into a resource group.

        Parameters
        ----------
        project : str
            Event name from the report

        Returns
        -------
        Optional[str]
            Resource group, or None when the project or its customer has no
            mapping
        """
        if project in self._resolved:
            group = self._resolved[project]
            if group is None:
                self._count_repeat(project)
            return group

        group = None
        customer = self.resolve_customer(project)
        if customer is not None:
            group = self.snapshot.cust_rsgp_map.get(customer)
            if group is None and self._record(UNRESOLVED_CUSTOMER, customer, project):
                logger.warning("No mapping for customer: %s (project %s)", customer, project)

        self._resolved[project] = group
        return group

    def _count_repeat(self, project: str) -> None:
        customer = self.snapshot.proj_cust_map.get(project)
        if customer is None:
            self._record(UNRESOLVED_PROJECT, project, project)
        else:
            self._record(UNRESOLVED_CUSTOMER, customer, project)
