"""Project/customer and customer/resource group mapping snapshots."""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import MappingFormatError

logger = logging.getLogger(__name__)

PROJ_CUST_KEY = "proj_cust_map"
CUST_RSGP_KEY = "cust_rsgp_map"


def _validated_map(data: Mapping[str, Any], key: str) -> Dict[str, str]:
    if key not in data:
        raise MappingFormatError(f"Mapping data is missing '{key}'")
    table = data[key]
    if not isinstance(table, dict):
        raise MappingFormatError(f"'{key}' must be an object, got {type(table).__name__}")
    for name, value in table.items():
        if not isinstance(value, str):
            raise MappingFormatError(
                f"'{key}' entry {name!r} must map to a string, got {type(value).__name__}"
            )
    return dict(table)


class MappingSnapshot:
    """Read-only copy of both lookup tables, taken at the start of a run."""

    def __init__(
        self,
        proj_cust_map: Optional[Mapping[str, str]] = None,
        cust_rsgp_map: Optional[Mapping[str, str]] = None
    ):
        """
        Initialize the snapshot.

        Parameters
        ----------
        proj_cust_map : Optional[Mapping[str, str]]
            Project name to customer name
        cust_rsgp_map : Optional[Mapping[str, str]]
            Customer name to resource group name
        """
        self.proj_cust_map: Mapping[str, str] = MappingProxyType(dict(proj_cust_map or {}))
        self.cust_rsgp_map: Mapping[str, str] = MappingProxyType(dict(cust_rsgp_map or {}))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MappingSnapshot":
        """Build a snapshot from the ``{"proj_cust_map": ..., "cust_rsgp_map": ...}`` shape."""
        if not isinstance(data, dict):
            raise MappingFormatError("Mapping data must be a JSON object")
        return cls(
            proj_cust_map=_validated_map(data, PROJ_CUST_KEY),
            cust_rsgp_map=_validated_map(data, CUST_RSGP_KEY)
        )

    def resource_groups(self) -> List[str]:
        """Distinct resource groups, in the order they first appear."""
        return list(dict.fromkeys(self.cust_rsgp_map.values()))

    def known_projects(self) -> List[str]:
        return list(self.proj_cust_map.keys())

    def known_customers(self) -> List[str]:
        """Customers referenced by either table, first appearance first."""
        customers = list(self.proj_cust_map.values()) + list(self.cust_rsgp_map.keys())
        return list(dict.fromkeys(customers))

    def customers_without_group(self) -> List[str]:
        """Customers that projects point at but that have no resource group."""
        return [
            customer
            for customer in dict.fromkeys(self.proj_cust_map.values())
            if customer not in self.cust_rsgp_map
        ]


def load_mappings(mappings_path: Path) -> MappingSnapshot:
    """
    Read a mapping snapshot from a JSON file.

    Parameters
    ----------
    mappings_path : Path
        Path to the JSON mapping export

    Returns
    -------
    MappingSnapshot
        Snapshot of both tables

    Raises
    ------
    MappingFormatError
        If the file is not valid JSON or does not have both tables
    """
    with mappings_path.open('r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise MappingFormatError(f"Mapping file {mappings_path} is not valid JSON: {e}") from e

    snapshot = MappingSnapshot.from_dict(data)
    logger.info(
        "Loaded %d project mappings and %d customer mappings from %s",
        len(snapshot.proj_cust_map),
        len(snapshot.cust_rsgp_map),
        mappings_path
    )
    return snapshot
