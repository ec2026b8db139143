import json

import pytest

from resource_usage.config import EXPECTED_REPORT_HDR, REPORT_HEADER_LINE
from resource_usage.mappings import MappingSnapshot


def quote_line(cells):
    return ",".join(f'"{cell}"' for cell in cells)


def usage_row(project, resource_name, quantity, number="1001"):
    """
    Build one report data row.

    Parameters
    ----------
    project : str
        Event name, resolved through the mappings
    resource_name : str
        Resource name such as "Planner-2023-Week1"
    quantity : Any
        Resource quantity cell
    number : str, optional
        Event number, defaults to "1001"
    """
    return [
        number,
        project,
        "01/02/2023 08:00",
        "01/02/2023 17:00",
        "Confirmed",
        resource_name,
        "Staff",
        str(quantity),
    ]


@pytest.fixture
def make_report():
    """Fixture returning a builder for report text with the standard preamble and header."""
    def _make_report(rows, header=None):
        lines = [["Resource Usage Export"], ["Generated", "01/15/2023"]]
        lines.extend([] for _ in range(REPORT_HEADER_LINE - len(lines)))
        lines.append(header if header is not None else EXPECTED_REPORT_HDR)
        lines.extend(rows)
        return "\r\n".join(quote_line(line) for line in lines) + "\r\n"
    return _make_report


@pytest.fixture
def row():
    """Fixture exposing the data row builder."""
    return usage_row


@pytest.fixture
def mapping_data():
    """Fixture for the mapping JSON shape."""
    return {
        "proj_cust_map": {
            "Bridge Build": "Acme",
            "Tower Plan": "Globex",
            "Road Survey": "Acme",
            "Harbor Works": "Initech",
        },
        "cust_rsgp_map": {
            "Acme": "567 COG",
            "Globex": "81 TRW",
            "Initech": "567 COG",
        },
    }


@pytest.fixture
def snapshot(mapping_data):
    """Fixture for a mapping snapshot with two resource groups."""
    return MappingSnapshot.from_dict(mapping_data)


@pytest.fixture
def mappings_file(tmp_path, mapping_data):
    """Fixture writing the mapping JSON to disk."""
    path = tmp_path / "mappings.json"
    path.write_text(json.dumps(mapping_data, indent=2), encoding="utf-8")
    return path
