import json

import pytest

from masverify import cli
from masverify.commands.locate import detect_profile, locate_app
from masverify.commands.signing_config import print_signing_config
from masverify.commands.strip_updater import remove_updater_components, strip_updater
from masverify.commands.verify_bundle import find_app_bundle, verify_bundle
from masverify.src.apple.signing_tools import SigningTools
from masverify.src.core.extractor import find_updater_components
from samples import PROFILE_TEXT, FakeRunner, make_app, signing_responses


def test_locate_app_prints_path(config, dist, emitter, capsys):
    app = make_app(dist / "mas")

    assert locate_app(config, emitter=emitter) == 0
    assert capsys.readouterr().out.strip() == str(app.resolve())


def test_locate_app_failure(config, emitter, capsys):
    assert locate_app(config, emitter=emitter) == 1
    assert "dist directory not found" in emitter.err
    assert capsys.readouterr().out == ""


def test_detect_profile_prints_path(config, emitter, capsys):
    config.profile_path.parent.mkdir(parents=True)
    config.profile_path.write_bytes(b"0\x82profile")
    tools = SigningTools(FakeRunner(signing_responses()))

    assert detect_profile(config, tools=tools, emitter=emitter) == 0
    assert capsys.readouterr().out.strip() == str(config.profile_path.resolve())


def test_detect_profile_mismatch(config, emitter):
    config.profile_path.parent.mkdir(parents=True)
    config.profile_path.write_bytes(b"0\x82profile")
    text = PROFILE_TEXT.replace("com.nexuscountdown", "com.example.other")
    tools = SigningTools(FakeRunner(signing_responses(profile_text=text)))

    assert detect_profile(config, tools=tools, emitter=emitter) == 1
    assert "application-identifier mismatch" in emitter.err
    assert "Expected: T6YG6KXA9D.com.nexuscountdown" in emitter.err
    assert "Found:    T6YG6KXA9D.com.example.other" in emitter.err


def make_direct_build(dist, unpacked=False, asar=True, dmg=True):
    app = make_app(dist / "mac-universal", profile=False)
    resources = app / "Contents" / "Resources"
    if asar:
        (resources / "app.asar").write_bytes(b"asar")
    if unpacked:
        (resources / "app" / "web").mkdir(parents=True)
        (resources / "app" / "web" / "index.html").write_text("<html></html>")
    if dmg:
        (dist / "Nexus Countdown-1.0.0-universal.dmg").write_bytes(b"dmg")
    return app


def test_find_app_bundle(dist):
    app = make_direct_build(dist)

    assert find_app_bundle(dist) == app
    assert find_app_bundle(dist / "missing") is None


def test_verify_bundle_passes(config, dist, emitter):
    make_direct_build(dist)

    assert verify_bundle(config, emitter=emitter) == 0
    assert "Summary: 4 passed, 0 failed" in emitter.out
    assert "App is packaged as asar" in emitter.out


def test_verify_bundle_unpacked_without_index(config, dist, emitter):
    app = make_direct_build(dist, unpacked=True, asar=False, dmg=False)
    (app / "Contents" / "Resources" / "app" / "web" / "index.html").unlink()

    assert verify_bundle(config, emitter=emitter) == 1
    assert "Summary: 2 passed, 3 failed" in emitter.out
    assert "app.asar exists" in emitter.err
    assert "index.html exists in unpacked app" in emitter.err
    assert "No DMG found in dist/" in emitter.err


def test_verify_bundle_without_dist(config, emitter):
    assert verify_bundle(config, emitter=emitter) == 1
    assert "Summary: 0 passed, 2 failed" in emitter.out


def write_package_json(config, build):
    config.electron_dir.mkdir(parents=True, exist_ok=True)
    config.package_json.write_text(json.dumps({"name": "nexus-countdown", "build": build}))


def test_signing_config_matches(config, capsys):
    identity = config.expected.signing_identity
    write_package_json(
        config,
        {
            "appId": "com.nexuscountdown",
            "productName": "Nexus Countdown",
            "mac": {"identity": identity},
            "mas": {"identity": identity},
        },
    )

    assert print_signing_config(config) == 0
    out = capsys.readouterr().out
    assert "appId: com.nexuscountdown" in out
    assert "mac.forceCodeSigning: (not set)" in out
    assert "Configuration looks correct!" in out


def test_signing_config_wrong_mas_identity(config, capsys):
    write_package_json(config, {"mas": {"identity": "Someone Else (AAAAAAAAAA)"}})

    assert print_signing_config(config) == 1
    captured = capsys.readouterr()
    assert "mac.identity does not match expected value" in captured.out
    assert "mas.identity does not match expected value" in captured.err


def test_signing_config_missing_file(config, capsys):
    assert print_signing_config(config) == 1
    assert "Could not find config" in capsys.readouterr().err


def test_remove_updater_components(tmp_path):
    app = make_app(tmp_path, updater=True)
    stray = app / "Contents" / "Resources" / "ShipIt"
    stray.write_bytes(b"")

    removed = remove_updater_components(app)

    assert app / "Contents" / "Frameworks" / "Squirrel.framework" in removed
    assert stray in removed
    assert find_updater_components(app) == []
    assert (app / "Contents" / "MacOS" / "Nexus Countdown").exists()


def test_strip_updater_missing_bundle_is_not_an_error(tmp_path, capsys):
    assert strip_updater(tmp_path / "Missing.app") == 0
    assert "skipping Squirrel removal" in capsys.readouterr().out


def test_cli_strip_updater(tmp_path):
    app = make_app(tmp_path, updater=True)

    assert cli.main(["strip-updater", str(app)]) == 0
    assert find_updater_components(app) == []


def test_cli_verify_bundle_uses_repo_root_from_environment(
    monkeypatch, config, dist
):
    make_direct_build(dist)
    monkeypatch.setenv("MASVERIFY_REPO_ROOT", str(config.repo_root))

    assert cli.main(["verify-bundle"]) == 0


def test_cli_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])

    assert excinfo.value.code == 0
    assert "masverify 0.1.0" in capsys.readouterr().out


def test_cli_without_command_prints_help():
    assert cli.main([]) == 1
