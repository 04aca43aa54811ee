"""Tests for edgeroute.build.builder — build orchestration."""

import subprocess
import sys
from pathlib import Path

import pytest

from edgeroute.build.builder import Builder, build
from edgeroute.config import BuildContext, BuildOptions
from edgeroute.errors import ConfigurationError


class TestBuild:
    async def test_builds_both_bundles(self, app_dir: Path, tmp_path: Path) -> None:
        context = BuildContext.create(app_dir, tmp_path / "out")
        result = await build(context)

        assert result.manifest.build_id == "build-1"
        assert result.default_bundle == (tmp_path / "out" / "default-lambda").resolve()
        assert result.api_bundle == (tmp_path / "out" / "api-lambda").resolve()
        assert (result.default_bundle / "manifest.json").is_file()
        assert (result.api_bundle / "manifest.json").is_file()

    async def test_no_api_bundle_without_api_routes(self, make_app, tmp_path: Path) -> None:
        app = make_app(with_api=False)
        result = await Builder(BuildContext.create(app, tmp_path / "out")).build()
        assert result.api_bundle is None
        assert result.manifest.has_api_routes is False

    async def test_stale_output_removed(self, app_dir: Path) -> None:
        stale = app_dir / "default-lambda" / "stale.js"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")
        api_stale = app_dir / "api-lambda" / "stale.js"
        api_stale.parent.mkdir(parents=True)
        api_stale.write_text("old")

        await build(BuildContext.create(app_dir))
        assert not stale.exists()
        assert not api_stale.exists()

    async def test_missing_build_output(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="pages-manifest.json"):
            await build(BuildContext.create(tmp_path))


class TestBuildCommand:
    async def test_runs_in_app_dir(self, app_dir: Path) -> None:
        options = BuildOptions(
            cmd=sys.executable,
            args=("-c", "open('marker.txt', 'w').write('built')"),
        )
        await Builder(BuildContext.create(app_dir, options=options)).run_build_command()
        assert (app_dir / "marker.txt").read_text() == "built"

    async def test_env_passed(self, app_dir: Path) -> None:
        options = BuildOptions(
            cmd=sys.executable,
            args=("-c", "import os; open('env.txt', 'w').write(os.environ['STAGE'])"),
            env={"STAGE": "prod"},
        )
        await Builder(BuildContext.create(app_dir, options=options)).run_build_command()
        assert (app_dir / "env.txt").read_text() == "prod"

    async def test_failure_propagates(self, app_dir: Path) -> None:
        options = BuildOptions(cmd=sys.executable, args=("-c", "raise SystemExit(3)"))
        with pytest.raises(subprocess.CalledProcessError):
            await Builder(BuildContext.create(app_dir, options=options)).run_build_command()

    async def test_no_command_is_noop(self, app_dir: Path) -> None:
        await Builder(BuildContext.create(app_dir)).run_build_command()


class TestCleanBuildOutput:
    async def test_cache_preserved(self, app_dir: Path) -> None:
        await Builder(BuildContext.create(app_dir)).clean_build_output()
        dot_next = app_dir / ".next"
        assert (dot_next / "cache" / "webpack.pack").is_file()
        assert not (dot_next / "BUILD_ID").exists()
        assert not (dot_next / "serverless").exists()
