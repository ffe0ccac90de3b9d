"""
Terraform apply and state cleanup tests.
"""

from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from conftest import FakeRunner, result  # noqa: E402
from mvdctl.errors import FatalStageError  # noqa: E402
from mvdctl.infra import apply_infra, clean_infra_state  # noqa: E402


class TestApplyInfra:
    def test_init_then_apply_in_infra_dir(self, tmp_path):
        runner = FakeRunner()

        apply_infra(runner, tmp_path)

        assert runner.calls == [
            ('terraform', 'init', '-input=false'),
            ('terraform', 'apply', '-auto-approve'),
        ]
        assert all(kw['cwd'] == tmp_path for kw in runner.kwargs)

    def test_missing_directory_is_fatal(self, tmp_path):
        runner = FakeRunner()

        with pytest.raises(FatalStageError, match="does not exist"):
            apply_infra(runner, tmp_path / "missing")

        assert runner.calls == []

    def test_init_failure_stops_before_apply(self, tmp_path):
        runner = FakeRunner().on('terraform', 'init', response=result(1))

        with pytest.raises(FatalStageError) as excinfo:
            apply_infra(runner, tmp_path)

        assert excinfo.value.stage == 'terraform-init'
        assert not runner.called('terraform', 'apply')

    def test_apply_failure_is_fatal(self, tmp_path):
        runner = FakeRunner().on('terraform', 'apply', response=result(1))

        with pytest.raises(FatalStageError) as excinfo:
            apply_infra(runner, tmp_path)

        assert excinfo.value.stage == 'terraform-apply'


class TestCleanInfraState:
    def test_removes_state_lock_and_cache(self, tmp_path):
        (tmp_path / "terraform.tfstate").write_text("{}")
        (tmp_path / "terraform.tfstate.backup").write_text("{}")
        (tmp_path / ".terraform.lock.hcl").write_text("")
        (tmp_path / ".terraform" / "modules").mkdir(parents=True)
        (tmp_path / "main.tf").write_text("")

        removed = clean_infra_state(tmp_path)

        assert len(removed) == 4
        assert not (tmp_path / "terraform.tfstate").exists()
        assert not (tmp_path / "terraform.tfstate.backup").exists()
        assert not (tmp_path / ".terraform.lock.hcl").exists()
        assert not (tmp_path / ".terraform").exists()
        assert (tmp_path / "main.tf").exists()

    def test_only_top_level_state_files(self, tmp_path):
        nested = tmp_path / "modules" / "consumer"
        nested.mkdir(parents=True)
        (nested / "terraform.tfstate").write_text("{}")

        removed = clean_infra_state(tmp_path)

        assert removed == []
        assert (nested / "terraform.tfstate").exists()

    def test_nothing_to_remove_is_fine_twice(self, tmp_path):
        assert clean_infra_state(tmp_path) == []
        assert clean_infra_state(tmp_path) == []

    def test_failed_removal_does_not_stop_the_rest(self, tmp_path, monkeypatch):
        (tmp_path / ".terraform" / "modules").mkdir(parents=True)
        (tmp_path / "terraform.tfstate").write_text("{}")
        (tmp_path / ".terraform.lock.hcl").write_text("")
        original_unlink = Path.unlink

        def unlink(self, *args, **kwargs):
            if self.name == "terraform.tfstate":
                raise PermissionError(13, "Permission denied")
            return original_unlink(self, *args, **kwargs)

        monkeypatch.setattr(Path, "unlink", unlink)

        removed = clean_infra_state(tmp_path)

        assert sorted(p.name for p in removed) == [".terraform", ".terraform.lock.hcl"]
        assert (tmp_path / "terraform.tfstate").exists()
        assert not (tmp_path / ".terraform").exists()
