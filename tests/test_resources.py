import pytest

from storkit.resources import (
    ContainerResource,
    OwnerInfo,
    merge_resource_requirements,
    refer_same_object,
    set_owner_refs_without_block_owner,
    yaml_to_container_resource,
)


def test_merge_resource_requirements_empty():
    result = merge_resource_requirements({}, {})
    assert len(result.get("limits", {})) == 0
    assert len(result.get("requests", {})) == 0


def test_merge_resource_requirements_from_second():
    second = {"limits": {"cpu": "100"}, "requests": {"memory": "1337"}}
    result = merge_resource_requirements({}, second)
    assert len(result["limits"]) == 1
    assert len(result["requests"]) == 1
    assert result["limits"]["cpu"] == "100"
    assert result["requests"]["memory"] == "1337"


def test_merge_resource_requirements_first_wins():
    first = {"limits": {"cpu": "42"}}
    second = {
        "limits": {"cpu": "100"},
        "requests": {"cpu": "100", "memory": "1337"},
    }
    result = merge_resource_requirements(first, second)
    assert len(result["limits"]) == 1
    assert len(result["requests"]) == 2
    assert result["limits"]["cpu"] == "42"
    assert result["requests"]["memory"] == "1337"


VALID = """
- name: rbdplugin
  resource:
    requests:
      memory: 512Mi
      cpu: 250m
    limits:
      memory: 512Mi
      cpu: 250m
- name: rbdplugin
  resource:
    requests:
      memory: 512Mi
      cpu: 250m
    limits:
      memory: 512Mi
      cpu: 250m"""

INVALID = """
\tinvalid:
\t  data: 512Mi
\tinvalid:
\t  memry: 512Mi
\t  cpu: 250m"""


def test_yaml_to_container_resource_valid():
    res = yaml_to_container_resource(VALID)
    assert len(res) == 2
    assert res[0] == ContainerResource(
        name="rbdplugin",
        resource={
            "requests": {"memory": "512Mi", "cpu": "250m"},
            "limits": {"memory": "512Mi", "cpu": "250m"},
        },
    )


def test_yaml_to_container_resource_invalid():
    with pytest.raises(ValueError):
        yaml_to_container_resource(INVALID)


def test_yaml_to_container_resource_empty():
    assert yaml_to_container_resource("") == []


def test_validate_owner():
    owner_ref = {}
    OwnerInfo(owner_ref, "").validate_owner({})

    info = OwnerInfo(owner_ref, "test-ns")
    with pytest.raises(ValueError):
        info.validate_owner({})
    obj = {"metadata": {"namespace": "test-ns"}}
    info.validate_owner(obj)
    obj["metadata"]["namespace"] = "different-ns"
    with pytest.raises(ValueError, match="cross-namespaced"):
        info.validate_owner(obj)


def test_validate_controller():
    info = OwnerInfo({"uid": "test-id"}, "")
    obj = {}
    info.validate_controller(obj)
    info.set_controller_reference(obj)
    info.validate_controller(obj)
    info.set_controller_reference(obj)
    refs = obj["metadata"]["ownerReferences"]
    assert refs[0]["controller"] is True
    assert refs[0]["blockOwnerDeletion"] is True
    with pytest.raises(ValueError):
        OwnerInfo({"uid": "different-id"}, "").validate_controller(obj)


def test_set_controller_reference_keeps_block_owner_deletion():
    info = OwnerInfo({"uid": "u", "blockOwnerDeletion": False}, "")
    obj = {}
    info.set_controller_reference(obj)
    assert obj["metadata"]["ownerReferences"][0]["blockOwnerDeletion"] is False


def test_set_owner_reference():
    info = OwnerInfo({"name": "test-id"})
    obj = {}
    info.set_owner_reference(obj)
    assert obj["metadata"]["ownerReferences"] == [info.owner_ref]

    info.set_owner_reference(obj)
    assert obj["metadata"]["ownerReferences"] == [info.owner_ref]

    info2 = OwnerInfo({"name": "test-id-2"})
    info2.set_owner_reference(obj)
    assert obj["metadata"]["ownerReferences"] == [info.owner_ref, info2.owner_ref]


def test_refer_same_object():
    a = {"apiVersion": "apps/v1", "kind": "Deployment", "name": "x"}
    assert refer_same_object(a, {"apiVersion": "apps/v2", "kind": "Deployment", "name": "x"})
    assert not refer_same_object(a, {"apiVersion": "v1", "kind": "Deployment", "name": "x"})
    assert not refer_same_object(a, {"apiVersion": "a/b/c", "kind": "Deployment", "name": "x"})


def test_set_owner_refs_without_block_owner():
    refs = [
        {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "name": "op",
            "uid": "u1",
            "controller": True,
            "blockOwnerDeletion": True,
        }
    ]
    obj = {}
    set_owner_refs_without_block_owner(obj, refs)
    assert obj["metadata"]["ownerReferences"] == [
        {"apiVersion": "apps/v1", "kind": "Deployment", "name": "op", "uid": "u1"}
    ]
    untouched = {}
    set_owner_refs_without_block_owner(untouched, None)
    assert untouched == {}