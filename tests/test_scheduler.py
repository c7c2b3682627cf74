"""Tests for configure/load propagation over the package graph."""

import os

from dep.modules.scheduler import PhaseScheduler


def record(events, label):
    def hook():
        events.append(label)
    return hook


def fail(message):
    def hook():
        raise RuntimeError(message)
    return hook


def make_scheduler(graph, activated=None):
    activated = activated if activated is not None else []
    return PhaseScheduler(graph, activator=lambda pkg: activated.append(pkg.id))


def hooked(events, id, requires=None, **extra):
    name = id.split("/")[1]
    spec = {
        "id": id,
        "setup": record(events, f"setup:{name}"),
        "config": record(events, f"config:{name}"),
        "load": record(events, f"load:{name}"),
    }
    if requires:
        spec["requires"] = requires
    spec.update(extra)
    return spec


def test_configure_runs_in_dependency_order_regardless_of_declaration(make_graph):
    events = []
    graph = make_graph([
        {"id": "x/z", "requires": "x/y", "config": record(events, "z")},
        {"id": "x/y", "requires": "x/x", "config": record(events, "y")},
        {"id": "x/x", "config": record(events, "x")},
    ], installed=["x", "y", "z"])
    scheduler = make_scheduler(graph)

    # as if freshly installed
    scheduler.invalidate(graph["x/x"])
    scheduler.reload()

    assert events == ["x", "y", "z"]
    assert all(graph[i].configured and graph[i].loaded for i in ("x/x", "x/y", "x/z"))


def test_phases_run_setup_activate_config_then_load(make_graph):
    events, activated = [], []
    graph = make_graph([hooked(events, "x/b", requires="x/a"), hooked(events, "x/a")],
                       installed=["a", "b"])
    scheduler = make_scheduler(graph, activated)
    scheduler.invalidate(graph["x/a"])
    scheduler.reload()

    assert events == [
        "setup:a", "config:a",
        "setup:b", "config:b",
        "load:a", "load:b",
    ]
    assert activated == ["x/a", "x/b"]


def test_already_installed_packages_only_setup_and_load(make_graph):
    events = []
    graph = make_graph([hooked(events, "x/a")], installed=["a"])
    scheduler = make_scheduler(graph)
    assert scheduler.reload() is True
    assert events == ["setup:a", "load:a"]


def test_diamond_runs_each_hook_once(make_graph):
    events = []
    graph = make_graph([
        {"id": "x/d", "requires": ["x/b", "x/c"], "config": record(events, "d")},
        {"id": "x/b", "requires": "x/a", "config": record(events, "b")},
        {"id": "x/c", "requires": "x/a", "config": record(events, "c")},
        {"id": "x/a", "config": record(events, "a")},
    ], installed=["a", "b", "c", "d"])
    scheduler = make_scheduler(graph)
    scheduler.invalidate(graph["x/a"])
    scheduler.reload()
    scheduler.reload()

    assert events.count("d") == 1
    assert events[0] == "a"
    assert events.index("d") > events.index("b")
    assert events.index("d") > events.index("c")
    assert graph.root.subtree_configured and graph.root.subtree_loaded


def test_reload_is_idempotent(make_graph):
    events = []
    graph = make_graph([hooked(events, "x/a")], installed=["a"])
    scheduler = make_scheduler(graph)
    scheduler.reload()
    before = list(events)
    assert scheduler.reload() is True
    assert events == before


def test_reload_all_reruns_load_hooks_only(make_graph):
    events = []
    graph = make_graph([hooked(events, "x/a")], installed=["a"])
    scheduler = make_scheduler(graph)
    scheduler.reload()
    events.clear()
    scheduler.reload_all()
    assert events == ["load:a"]


def test_failed_hook_blocks_dependents_but_not_siblings(make_graph):
    events = []
    graph = make_graph([
        {"id": "x/a", "config": fail("boom")},
        {"id": "x/b", "requires": "x/a", "config": record(events, "b"), "load": record(events, "load:b")},
        {"id": "x/c", "requires": "x/b", "config": record(events, "c")},
        {"id": "x/w", "config": record(events, "w")},
    ], installed=["a", "b", "c", "w"])
    scheduler = make_scheduler(graph)
    for id in ("x/a", "x/w"):
        scheduler.invalidate(graph[id])
    scheduler.reload()

    assert graph["x/a"].error is True
    for id in ("x/b", "x/c"):
        assert not graph[id].configured
        assert not graph[id].loaded
    assert graph["x/w"].configured and graph["x/w"].loaded
    assert events == ["w"]
    assert not graph.root.subtree_configured


def test_reload_clears_errors_and_retries(make_graph):
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("first time fails")

    graph = make_graph([{"id": "x/a", "load": flaky}], installed=["a"])
    scheduler = make_scheduler(graph)
    scheduler.reload()
    assert graph["x/a"].error and not graph["x/a"].loaded

    scheduler.reload()
    assert not graph["x/a"].error and graph["x/a"].loaded
    assert len(attempts) == 2


def test_activation_failure_is_node_local(make_graph):
    graph = make_graph(["x/a", "x/b"], installed=["a", "b"])

    def activator(pkg):
        if pkg.id == "x/a":
            raise ImportError("cannot activate")

    scheduler = PhaseScheduler(graph, activator=activator)
    scheduler.reload()
    assert graph["x/a"].error and not graph["x/a"].loaded
    assert graph["x/b"].loaded


def test_disabled_and_missing_packages_never_run_hooks(make_graph):
    events = []
    graph = make_graph([
        hooked(events, "x/a", disable=True),
        hooked(events, "x/b", requires="x/a"),
        hooked(events, "x/missing"),
    ], installed=["a", "b"])
    scheduler = make_scheduler(graph)
    scheduler.invalidate(graph["x/a"])
    scheduler.reload()
    assert events == []
    assert not graph["x/b"].loaded
    assert not graph["x/missing"].loaded


def test_hooks_run_inside_the_package_directory(make_graph):
    seen = []
    graph = make_graph([{"id": "x/a", "load": lambda: seen.append(os.getcwd())}], installed=["a"])
    cwd = os.getcwd()
    make_scheduler(graph).reload()
    assert seen == [os.path.realpath(graph["x/a"].dir)] or seen == [graph["x/a"].dir]
    assert os.getcwd() == cwd


def test_invalidate_clears_both_closures(make_graph):
    graph = make_graph([
        {"id": "x/b", "requires": "x/a"},
        {"id": "x/c", "requires": "x/b"},
        "x/other",
    ], installed=["a", "b", "c", "other"])
    scheduler = make_scheduler(graph)
    scheduler.reload()
    assert all(p.loaded for p in graph)

    scheduler.invalidate(graph["x/b"])
    for id in ("dep/dep", "x/a", "x/b", "x/c"):
        pkg = graph[id]
        assert not pkg.configured and not pkg.loaded
        assert not pkg.subtree_configured and not pkg.subtree_loaded
    assert graph["x/other"].loaded and graph["x/other"].subtree_loaded
    assert graph["x/a"].added
    assert not graph["x/b"].added and not graph["x/c"].added


def test_timing_samples_are_recorded(make_graph):
    graph = make_graph([{"id": "x/a", "setup": lambda: None, "load": lambda: None}], installed=["a"])
    make_scheduler(graph).reload()
    perf = graph["x/a"].perf
    assert set(perf) >= {"setup", "activate", "load"}


def test_hooks_on_root_identity_do_not_block_packages(make_graph):
    events = []
    graph = make_graph([
        {"id": "dep/dep", "load": record(events, "load:root")},
        hooked(events, "x/a"),
    ], installed=["a"])
    assert not os.path.isdir(graph.root.dir)

    make_scheduler(graph).reload()

    assert not graph.root.error
    assert events == ["load:root", "setup:a", "load:a"]
    assert graph["x/a"].loaded
