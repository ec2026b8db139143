from resource_usage.mappings import MappingSnapshot
from resource_usage.resolver import GroupResolver


def test_resolves_project_through_customer(snapshot):
    resolver = GroupResolver(snapshot)

    assert resolver.resolve_group("Bridge Build") == "567 COG"
    assert resolver.resolve_group("Tower Plan") == "81 TRW"
    assert resolver.resolve_group("Harbor Works") == "567 COG"
    assert resolver.unresolved == []


def test_unknown_project_is_reported_once_and_hook_called_once(snapshot):
    seen = []
    resolver = GroupResolver(snapshot, on_unknown_project=seen.append)

    assert resolver.resolve_group("Mystery Job") is None
    assert resolver.resolve_group("Mystery Job") is None

    assert seen == ["Mystery Job"]
    assert resolver.unresolved == [
        {"kind": "project", "identifier": "Mystery Job", "project": "Mystery Job", "rows": 2}
    ]


def test_unknown_customer_is_reported(mapping_data):
    mapping_data["proj_cust_map"]["Dock Repair"] = "Umbrella"
    snapshot = MappingSnapshot.from_dict(mapping_data)
    seen = []
    resolver = GroupResolver(snapshot, on_unknown_project=seen.append)

    assert resolver.resolve_group("Dock Repair") is None

    assert seen == []
    assert resolver.unresolved == [
        {"kind": "customer", "identifier": "Umbrella", "project": "Dock Repair", "rows": 1}
    ]


def test_resolution_does_not_change_snapshot(snapshot, mapping_data):
    resolver = GroupResolver(snapshot)
    resolver.resolve_group("Mystery Job")

    assert dict(snapshot.proj_cust_map) == mapping_data["proj_cust_map"]
    assert dict(snapshot.cust_rsgp_map) == mapping_data["cust_rsgp_map"]
