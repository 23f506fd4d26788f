"""Tests for transitive expansion and nearest-wins mediation."""

from collections import Counter

from conftest import dep
from resolution.models import Coordinate, NodeStatus
from resolution.resolver import DependencyGraphResolver, derive_scope

PROJECT = Coordinate("com.example", "app", "1.0", "pom")


def _by_artifact(node):
    return {child.coordinate.artifact: child for child in node.children}


def _resolved_identities(tree):
    return Counter(n.coordinate.identity for n in tree.walk() if n.status == NodeStatus.RESOLVED)


def test_shallower_version_wins_and_deeper_is_conflict(fake_client):
    client = fake_client({
        "org.acme:a-lib:1.0": ["org.apache.commons:commons-lang3:1.0"],
        "org.apache.commons:commons-lang3:2.0": [],
        "org.apache.commons:commons-lang3:1.0": [],
    })
    declarations = [dep("org.acme:a-lib:1.0"), dep("org.apache.commons:commons-lang3:2.0")]

    tree = DependencyGraphResolver(client).resolve(declarations, root_coordinate=PROJECT)

    top = _by_artifact(tree)
    assert top["commons-lang3"].status == NodeStatus.RESOLVED
    assert top["commons-lang3"].coordinate.version == "2.0"
    deep = top["a-lib"].children[0]
    assert deep.coordinate.version == "1.0"
    assert deep.status == NodeStatus.CONFLICT
    assert "2.0" in deep.message
    assert deep.children == ()
    assert "org.apache.commons:commons-lang3:1.0" not in client.calls


def test_equal_depth_first_declared_wins(fake_client):
    client = fake_client({
        "g:a:1": ["g:x:1"],
        "g:b:1": ["g:x:2"],
        "g:x:1": [],
        "g:x:2": [],
    })
    tree = DependencyGraphResolver(client).resolve([dep("g:a:1"), dep("g:b:1")], root_coordinate=PROJECT)

    a, b = tree.children
    assert a.children[0].status == NodeStatus.RESOLVED
    assert a.children[0].coordinate.version == "1"
    assert b.children[0].status == NodeStatus.CONFLICT
    assert b.children[0].message == "Conflict with version 1"


def test_identity_resolved_at_most_once(fake_client):
    client = fake_client({
        "g:root:1": ["g:a:1", "g:b:1", "g:c:1"],
        "g:a:1": ["g:c:1", "g:d:1"],
        "g:b:1": ["g:d:2", "g:c:2"],
        "g:c:1": ["g:d:1"],
        "g:d:1": [],
    })
    tree = DependencyGraphResolver(client).resolve("g:root:1")

    assert all(count == 1 for count in _resolved_identities(tree).values())


def test_extension_is_part_of_identity(fake_client):
    client = fake_client({
        "g:root:1": ["g:x:1", "g:x:pom:2"],
        "g:x:1": [],
        "g:x:2": [],
    })
    tree = DependencyGraphResolver(client).resolve("g:root:1")

    assert [c.status for c in tree.children] == [NodeStatus.RESOLVED, NodeStatus.RESOLVED]
    assert [c.extension for c in tree.children] == ["jar", "pom"]


def test_cycle_terminates(fake_client):
    client = fake_client({
        "g:a:1": ["g:b:1"],
        "g:b:1": ["g:a:1", "g:a:2"],
    })
    tree = DependencyGraphResolver(client).resolve("g:a:1")

    b = tree.children[0]
    assert b.coordinate.artifact == "b"
    assert len(b.children) == 1
    assert b.children[0].coordinate.version == "2"
    assert b.children[0].status == NodeStatus.CONFLICT
    assert client.calls.count("g:a:1") == 1


def test_missing_metadata_keeps_node_and_siblings(fake_client):
    client = fake_client({"g:root:1": ["g:gone:1", "g:ok:1"], "g:ok:1": []}, failing={"g:boom:1"})
    tree = DependencyGraphResolver(client).resolve("g:root:1")

    gone, ok = tree.children
    assert gone.status == NodeStatus.MISSING
    assert "g:gone:1" in gone.message
    assert gone.children == ()
    assert ok.status == NodeStatus.RESOLVED


def test_fetch_exception_becomes_missing(fake_client):
    client = fake_client({"g:root:1": ["g:boom:1"]}, failing={"g:boom:1"})
    tree = DependencyGraphResolver(client).resolve("g:root:1")

    assert tree.children[0].status == NodeStatus.MISSING


def test_malformed_root_returns_error_placeholder(fake_client):
    client = fake_client()
    tree = DependencyGraphResolver(client).resolve("not-a-coordinate")

    assert tree.status == NodeStatus.ERROR
    assert tree.children == ()
    assert tree.message
    assert client.calls == []


def test_optional_non_runtime_declaration_is_optional(fake_client):
    client = fake_client({"g:tool:1": []})
    tree = DependencyGraphResolver(client).resolve(
        [dep("g:tool:1", scope="provided", optional=True)], root_coordinate=PROJECT
    )
    assert tree.children[0].status == NodeStatus.OPTIONAL


def test_transitive_test_and_optional_dependencies_not_followed(fake_client):
    client = fake_client({
        "g:lib:1": [
            dep("junit:junit:4.13.2", scope="test"),
            dep("g:extra:1", optional=True),
            dep("g:needed:1"),
        ],
        "g:needed:1": [],
    })
    tree = DependencyGraphResolver(client).resolve("g:lib:1")

    assert [c.coordinate.artifact for c in tree.children] == ["needed"]


def test_exclusions_prune_the_whole_branch(fake_client):
    client = fake_client({
        "g:a:1": ["g:b:1", "commons-logging:commons-logging:1.2"],
        "g:b:1": ["commons-logging:commons-logging:1.1", "g:c:1"],
        "g:c:1": [],
    })
    tree = DependencyGraphResolver(client).resolve(
        [dep("g:a:1", exclusions=("commons-logging:*",))], root_coordinate=PROJECT
    )

    artifacts = [n.coordinate.artifact for n in tree.walk()]
    assert "commons-logging" not in artifacts
    assert "c" in artifacts


def test_scope_is_derived_from_parent(fake_client):
    client = fake_client({"g:a:1": ["g:b:1"], "g:b:1": []})
    tree = DependencyGraphResolver(client).resolve([dep("g:a:1", scope="test")], root_coordinate=PROJECT)

    assert tree.children[0].children[0].scope == "test"


def test_derive_scope_table():
    assert derive_scope("compile", "compile") == "compile"
    assert derive_scope("runtime", "compile") == "runtime"
    assert derive_scope("provided", "runtime") == "provided"
    assert derive_scope("test", "compile") == "test"
    assert derive_scope("compile", "system") == "system"


def test_floating_latest_is_flagged(fake_client):
    client = fake_client({"org.slf4j:slf4j-api:2.0.9": []}, latest={"org.slf4j:slf4j-api": "2.0.9"})
    tree = DependencyGraphResolver(client).resolve(
        [dep("org.slf4j:slf4j-api:LATEST", floating=True)], root_coordinate=PROJECT
    )

    node = tree.children[0]
    assert node.floating
    assert node.coordinate.version == "LATEST"
    assert "2.0.9" in node.message


def test_reproducible_and_independent_of_worker_count(fake_client):
    graph = {
        "g:root:1": ["g:a:1", "g:b:1", "g:c:1"],
        "g:a:1": ["g:x:1", "g:y:1"],
        "g:b:1": ["g:x:2", "g:z:1"],
        "g:c:1": ["g:y:3"],
        "g:x:1": ["g:w:1"],
        "g:y:1": [],
        "g:z:1": ["g:w:2"],
        "g:w:1": [],
    }
    sequential = DependencyGraphResolver(fake_client(graph)).resolve("g:root:1")
    again = DependencyGraphResolver(fake_client(graph)).resolve("g:root:1")
    parallel = DependencyGraphResolver(fake_client(graph), max_workers=4).resolve("g:root:1")

    assert sequential == again
    assert sequential == parallel


def test_each_identity_fetched_once(fake_client):
    client = fake_client({
        "g:root:1": ["g:a:1", "g:b:1"],
        "g:a:1": ["g:shared:1"],
        "g:b:1": ["g:shared:1"],
        "g:shared:1": [],
    })
    tree = DependencyGraphResolver(client).resolve("g:root:1")

    assert client.calls.count("g:shared:1") == 1
    assert sum(1 for n in tree.walk() if n.coordinate.artifact == "shared") == 1
