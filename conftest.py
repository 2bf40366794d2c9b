import io

import pytest
from rich.console import Console

from masverify.src.core.report import ReportEmitter
from masverify.src.utils.config_loader import VerifierConfig


class CapturedEmitter(ReportEmitter):
    """ReportEmitter writing stdout and stderr lines to separate buffers"""

    def __init__(self):
        self.out_buffer = io.StringIO()
        self.err_buffer = io.StringIO()
        super().__init__(
            console=Console(file=self.out_buffer, width=200),
            error_console=Console(file=self.err_buffer, width=200),
        )

    @property
    def out(self) -> str:
        return self.out_buffer.getvalue()

    @property
    def err(self) -> str:
        return self.err_buffer.getvalue()


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    monkeypatch.delenv("MASVERIFY_REPO_ROOT", raising=False)
    monkeypatch.delenv("MASVERIFY_CONFIG", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def repo(tmp_path):
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def config(repo):
    return VerifierConfig(repo_root=repo)


@pytest.fixture
def dist(config):
    config.dist_dir.mkdir(parents=True)
    return config.dist_dir


@pytest.fixture
def emitter():
    return CapturedEmitter()
