import os

import pytest

# antes de qualquer import de dep.modules: configuração silenciosa para os testes
os.environ["DEP_CONF"] = os.path.join(os.path.dirname(os.path.abspath(__file__)), "dep.conf")

from dep.modules.graph import DependencyGraph  # noqa: E402
from dep.modules.vcs import ProcResult  # noqa: E402


class FakeGit:
    """
    GitRunner roteirizado: `heads` mapeia diretório -> revisão atual,
    `remote` mapeia diretório -> revisão que o fetch traria.
    """

    def __init__(self, heads=None, remote=None, fail=None):
        self.heads = dict(heads or {})
        self.remote = dict(remote or {})
        self.fail = dict(fail or {})
        self.fetched = {}
        self.calls = []

    def _failing(self, step, directory):
        return self.fail.get((step, directory))

    def rev_parse(self, directory, ref):
        self.calls.append(("rev-parse", directory, ref))
        msg = self._failing("rev-parse", directory)
        if msg:
            return ProcResult(128, msg)
        if ref == "FETCH_HEAD":
            return ProcResult(0, self.fetched[directory])
        if directory not in self.heads:
            return ProcResult(128, f"fatal: not a git repository: {directory}")
        return ProcResult(0, self.heads[directory] + "\n")

    def clone(self, directory, url, branch=None):
        self.calls.append(("clone", directory, url, branch))
        msg = self._failing("clone", directory)
        if msg:
            return ProcResult(128, msg)
        os.makedirs(directory, exist_ok=True)
        self.heads[directory] = self.remote.get(directory, "aaaaaaa")
        return ProcResult(0, "")

    def fetch(self, directory, remote, refspec):
        self.calls.append(("fetch", directory, remote, refspec))
        msg = self._failing("fetch", directory)
        if msg:
            return ProcResult(1, msg)
        self.fetched[directory] = self.remote.get(directory, self.heads.get(directory))
        return ProcResult(0, "")

    def reset(self, directory, treeish):
        self.calls.append(("reset", directory, treeish))
        msg = self._failing("reset", directory)
        if msg:
            return ProcResult(1, msg)
        self.heads[directory] = treeish
        return ProcResult(0, "")

    def steps(self, directory):
        return [c[0] for c in self.calls if c[1] == directory]


@pytest.fixture
def fake_git():
    return FakeGit()


@pytest.fixture
def base_dir(tmp_path):
    path = tmp_path / "packages"
    path.mkdir()
    return path


@pytest.fixture
def make_graph(base_dir):
    def factory(specs=None, installed=(), root="dep/dep"):
        for name in installed:
            (base_dir / name).mkdir(exist_ok=True)
        graph = DependencyGraph(str(base_dir))
        graph.set_root(root)
        if specs is not None:
            graph.add_specs(specs)
            graph.finalize()
        return graph
    return factory
