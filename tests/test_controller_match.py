import pytest

from conftest import deployment, deployment_config, pod_template, replica_set, replication_controller
from controller_match import (
    equal_ignore_hash,
    find_new_replica_set,
    find_new_replication_controller,
    get_new_replica_set,
    get_new_replication_controller,
    is_controlled_by,
    label_set_to_string,
    selector_to_string,
)
from errors import ClusterAccessError, SelectorError


class TestSelectors:
    def test_match_labels_sorted(self):
        assert selector_to_string({"matchLabels": {"tier": "web", "app": "shop"}}) == "app=shop,tier=web"

    def test_match_expressions(self):
        selector = {
            "matchLabels": {"app": "shop"},
            "matchExpressions": [
                {"key": "env", "operator": "In", "values": ["prod", "dev"]},
                {"key": "canary", "operator": "DoesNotExist"},
                {"key": "track", "operator": "NotIn", "values": ["beta"]},
                {"key": "zone", "operator": "Exists"},
            ],
        }
        assert selector_to_string(selector) == "app=shop,!canary,env in (dev,prod),track notin (beta),zone"

    def test_empty_selector(self):
        assert selector_to_string(None) == ""
        assert selector_to_string({}) == ""

    def test_unknown_operator(self):
        with pytest.raises(SelectorError):
            selector_to_string({"matchExpressions": [{"key": "a", "operator": "Near"}]})

    def test_label_set(self):
        assert label_set_to_string({"name": "web", "app": "shop"}) == "app=shop,name=web"


def test_equal_ignore_hash_strips_label_on_both_sides():
    assert equal_ignore_hash(pod_template("web", template_hash="111"), pod_template("web"))
    assert equal_ignore_hash(pod_template("web", template_hash="111"), pod_template("web", template_hash="222"))
    assert not equal_ignore_hash(pod_template("web", "nginx:1"), pod_template("web", "nginx:2"))


def test_equal_ignore_hash_treats_empty_as_unset():
    left = pod_template("web")
    right = pod_template("web")
    right["metadata"]["annotations"] = {}
    right["spec"]["volumes"] = []
    right["spec"]["nodeSelector"] = None
    assert equal_ignore_hash(left, right)


def test_equal_ignore_hash_does_not_mutate_inputs():
    template = pod_template("web", template_hash="111")
    equal_ignore_hash(template, pod_template("web"))
    assert template["metadata"]["labels"]["pod-template-hash"] == "111"


def test_ownership_requires_controller_uid():
    parent = deployment("web")
    owned = replica_set("web-1", parent)
    assert is_controlled_by(owned, parent)

    other = replica_set("web-2", deployment("web"))
    other["metadata"]["ownerReferences"][0]["uid"] = "someone-else"
    assert not is_controlled_by(other, parent)

    not_controller = replica_set("web-3", parent)
    not_controller["metadata"]["ownerReferences"][0]["controller"] = False
    assert not is_controlled_by(not_controller, parent)


def test_find_new_replica_set_picks_template_match():
    d = deployment("web", image="nginx:2")
    old = replica_set("web-old", d, image="nginx:1", ready=3, created="2024-01-01T00:00:00Z")
    new = replica_set("web-new", d, image="nginx:2", ready=1, created="2024-01-02T00:00:00Z")
    assert find_new_replica_set(d, [old, new]) is new


def test_find_new_replica_set_prefers_oldest_match():
    d = deployment("web")
    first = replica_set("web-b", d, created="2024-01-01T00:00:00Z")
    tie = replica_set("web-a", d, created="2024-01-01T00:00:00Z")
    later = replica_set("web-0", d, created="2024-03-01T00:00:00Z")
    assert find_new_replica_set(d, [later, first, tie]) is tie


def test_find_new_replica_set_none():
    d = deployment("web", image="nginx:2")
    assert find_new_replica_set(d, [replica_set("web-old", d, image="nginx:1")]) is None
    assert find_new_replica_set(d, []) is None


def test_get_new_replica_set_filters_unowned(cluster):
    d = cluster.add(deployment("web"))
    stranger = replica_set("web-stranger", d, created="2023-01-01T00:00:00Z")
    stranger["metadata"]["ownerReferences"][0]["uid"] = "uid-other"
    cluster.add(stranger)
    owned = cluster.add(replica_set("web-owned", d, created="2024-01-01T00:00:00Z"))

    assert get_new_replica_set(cluster, d)["metadata"]["name"] == owned["metadata"]["name"]
    assert ("list", "ReplicaSet", "default", "app=web") in cluster.calls


def test_get_new_replica_set_list_error_propagates(cluster):
    d = cluster.add(deployment("web"))
    cluster.fail_on = "ReplicaSet"
    with pytest.raises(ClusterAccessError):
        get_new_replica_set(cluster, d)


def test_deployment_config_takes_newest_unconditionally(cluster):
    dc = cluster.add(deployment_config("api"))
    cluster.add(replication_controller("api-1", dc, created="2024-01-01T00:00:00Z"))
    cluster.add(replication_controller("api-3", dc, created="2024-02-01T00:00:00Z"))
    cluster.add(replication_controller("api-2", dc, created="2024-02-01T00:00:00Z"))

    assert get_new_replication_controller(cluster, dc)["metadata"]["name"] == "api-3"
    assert ("list", "ReplicationController", "default", "app=api") in cluster.calls


def test_deployment_config_without_controllers():
    assert find_new_replication_controller(deployment_config("api"), []) is None
