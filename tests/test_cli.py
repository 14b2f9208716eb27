from click.testing import CliRunner

from loadout.cli import main

from conftest import digest, write_manifest

PAYLOAD = b"already provisioned"


def _config(tmp_path, url="https://example.com/dl/tool.tar.gz", hash_spec=None):
    return write_manifest(
        tmp_path,
        {
            "packages": {
                "tool": {
                    "version": "1.0",
                    "tags": ["cli"],
                    "global_assets": {
                        "src": {
                            "url": url,
                            "hash": hash_spec or f"sha256:{digest('sha256', PAYLOAD)}",
                        }
                    },
                    "platform_assets": {
                        "linux_amd64": {"url": "https://example.com/dl/linux/tool"}
                    },
                },
                "other": {"global_assets": {"s": {"url": "git://example.com/other"}}},
            }
        },
    )


def test_list_all_packages(tmp_path):
    manifest = _config(tmp_path)

    result = CliRunner().invoke(
        main, ["--config", str(manifest), "--list", "--platform", "linux_amd64"]
    )

    assert result.exit_code == 0, result.output
    assert "Available packages for linux_amd64" in result.output
    assert " - tool (1.0) [tags: cli] [has platform asset] [has global assets]" in result.output
    assert " - other (version unset) [has global assets]" in result.output


def test_list_selected_packages(tmp_path):
    manifest = _config(tmp_path)

    result = CliRunner().invoke(
        main,
        ["-c", str(manifest), "-l", "-s", "other", "-p", "darwin_arm64"],
    )

    assert result.exit_code == 0, result.output
    assert "other" in result.output
    assert "tool" not in result.output


def test_download_requires_select(tmp_path):
    result = CliRunner().invoke(main, ["--config", str(_config(tmp_path))])

    assert result.exit_code == 2
    assert "--select" in result.output


def test_invalid_manifest_exits_with_error(tmp_path):
    manifest = _config(tmp_path, hash_spec="sha256:not-hex")

    result = CliRunner().invoke(main, ["--config", str(manifest), "--list"])

    assert result.exit_code == 1
    assert "E103" in result.output


def test_concurrency_must_be_positive(tmp_path):
    result = CliRunner().invoke(
        main, ["--config", str(_config(tmp_path)), "-s", "tool", "-j", "0"]
    )

    assert result.exit_code == 2


def test_satisfied_selection_exits_zero(tmp_path):
    manifest = _config(tmp_path)
    out = tmp_path / "downloads"
    out.mkdir()
    (out / "tool.tar.gz").write_bytes(PAYLOAD)

    result = CliRunner().invoke(
        main,
        ["-c", str(manifest), "-o", str(out), "-s", "tool", "-p", "windows_amd64"],
    )

    assert result.exit_code == 0, result.output
    assert (out / "git").is_dir()
    assert (out / "windows_amd64").is_dir()


def test_failed_job_exits_one(tmp_path):
    manifest = _config(
        tmp_path, url="http://127.0.0.1:1/tool.tar.gz", hash_spec="sha256:none"
    )
    out = tmp_path / "downloads"

    result = CliRunner().invoke(
        main,
        ["-c", str(manifest), "-o", str(out), "-s", "tool", "-p", "windows_amd64"],
    )

    assert result.exit_code == 1
    assert not (out / "tool.tar.gz").exists()


def test_environment_configuration(tmp_path):
    manifest = _config(tmp_path)

    result = CliRunner().invoke(
        main,
        ["--list"],
        env={"LOADOUT_CONFIG": str(manifest), "LOADOUT_PLATFORM": "linux_arm64"},
    )

    assert result.exit_code == 0, result.output
    assert "Available packages for linux_arm64" in result.output
