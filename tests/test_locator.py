import pytest

from masverify.src.apple.signing_tools import SigningTools
from masverify.src.core.errors import (
    ArtifactNotFoundError,
    ExternalToolError,
    IdentifierMismatchError,
    MetadataParseError,
)
from masverify.src.core.locator import (
    ArtifactLocator,
    direct_paths,
    first_in_dirs,
    first_resolved,
    is_dir,
    is_file,
    marker_file,
    recursive_search,
)
from samples import (
    PROFILE_TEXT,
    FakeRunner,
    failed,
    make_app,
    ok,
    signing_responses,
)


def test_first_resolved_returns_first_non_empty_in_order(tmp_path):
    calls = []

    def strategy(name, result):
        def resolve():
            calls.append(name)
            return result

        return resolve

    found = first_resolved(
        [strategy("a", None), strategy("b", tmp_path), strategy("c", tmp_path / "c")]
    )

    assert found == tmp_path
    assert calls == ["a", "b"]


def test_first_resolved_with_nothing_found():
    assert first_resolved([lambda: None, lambda: None]) is None


def test_direct_paths_respects_order_and_predicate(tmp_path):
    a_file = tmp_path / "first"
    a_file.write_text("x")
    a_dir = tmp_path / "second"
    a_dir.mkdir()
    later_dir = tmp_path / "third"
    later_dir.mkdir()

    candidates = [tmp_path / "missing", a_file, a_dir, later_dir]

    assert direct_paths(candidates, is_dir)() == a_dir
    assert direct_paths(candidates, is_file)() == a_file
    assert direct_paths([tmp_path / "missing"], is_file)() is None


def test_direct_paths_expands_patterns_in_sorted_order(tmp_path):
    (tmp_path / "b.provisionprofile").write_text("b")
    (tmp_path / "a.provisionprofile").write_text("a")

    found = direct_paths([tmp_path / "*.provisionprofile"], is_file)()

    assert found == tmp_path / "a.provisionprofile"


def test_marker_file(tmp_path):
    target = tmp_path / "Nexus Countdown.app"
    target.mkdir()
    marker = tmp_path / ".mas-app-path"

    assert marker_file(marker)() is None

    marker.write_text(f"{target}\n")
    assert marker_file(marker)() == target

    marker.write_text(str(tmp_path / "gone.app"))
    assert marker_file(marker)() is None


def test_first_in_dirs_uses_first_directory_with_a_match(tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    second = tmp_path / "second"
    second.mkdir()
    (second / "z.pkg").write_text("")
    (second / "a.pkg").write_text("")
    third = tmp_path / "third"
    third.mkdir()
    (third / "0.pkg").write_text("")

    found = first_in_dirs([tmp_path / "absent", empty, second, third], ".pkg", is_file)()

    assert found == second / "a.pkg"


def test_recursive_search_prefers_mas_output(tmp_path):
    name = "Nexus Countdown.app"
    (tmp_path / "other" / name).mkdir(parents=True)
    (tmp_path / "mac" / name).mkdir(parents=True)
    (tmp_path / "nested" / "mas" / name).mkdir(parents=True)

    found = recursive_search(tmp_path, name, is_dir, max_depth=3)()

    assert found == tmp_path / "nested" / "mas" / name


def test_recursive_search_is_depth_bounded(tmp_path):
    name = "Nexus Countdown.app"
    (tmp_path / "a" / "b" / "c" / name).mkdir(parents=True)

    assert recursive_search(tmp_path, name, is_dir, max_depth=3)() is None
    assert recursive_search(tmp_path, name, is_dir, max_depth=4)() is not None


def locator_for(config, responses=None):
    runner = FakeRunner(responses or signing_responses())
    return ArtifactLocator(config, SigningTools(runner)), runner


def test_locate_app_direct_path_priority(config, dist):
    make_app(dist / "mac")
    expected = make_app(dist / "mas")
    locator, _ = locator_for(config)

    assert locator.locate_app() == expected.resolve()


def test_locate_app_falls_back_to_recursive_search(config, dist):
    expected = make_app(dist / "custom" / "universal")
    locator, _ = locator_for(config)

    assert locator.locate_app() == expected.resolve()


def test_locate_app_without_dist(config):
    locator, _ = locator_for(config)

    with pytest.raises(ArtifactNotFoundError) as excinfo:
        locator.locate_app()

    assert "dist directory not found" in excinfo.value.message


def test_locate_app_not_found(config, dist):
    (dist / "mas").mkdir()
    locator, _ = locator_for(config)

    with pytest.raises(ArtifactNotFoundError) as excinfo:
        locator.locate_app()

    assert excinfo.value.searched == [dist]


def test_locate_app_requires_info_plist(config, dist):
    make_app(dist / "mas", info_plist=False)
    locator, _ = locator_for(config)

    with pytest.raises(ArtifactNotFoundError, match="missing Info.plist"):
        locator.locate_app()


def write_profile(config):
    config.profile_path.parent.mkdir(parents=True)
    config.profile_path.write_bytes(b"0\x82profile")
    return config.profile_path


def test_locate_profile(config):
    profile = write_profile(config)
    locator, runner = locator_for(config)

    assert locator.locate_profile() == profile.resolve()
    assert runner.commands("security") == [["security", "cms", "-D", "-i", str(profile)]]


def test_locate_profile_missing(config):
    locator, _ = locator_for(config)

    with pytest.raises(ArtifactNotFoundError) as excinfo:
        locator.locate_profile()

    assert any("embedded.provisionprofile" in hint for hint in excinfo.value.hints)


def test_locate_profile_wrong_application_identifier(config):
    write_profile(config)
    text = PROFILE_TEXT.replace("com.nexuscountdown", "com.example.other")
    locator, _ = locator_for(config, signing_responses(profile_text=text))

    with pytest.raises(IdentifierMismatchError) as excinfo:
        locator.locate_profile()

    assert excinfo.value.expected == "T6YG6KXA9D.com.nexuscountdown"
    assert excinfo.value.found == "T6YG6KXA9D.com.example.other"


def test_locate_profile_unparseable(config):
    write_profile(config)
    locator, _ = locator_for(config, signing_responses(profile_text="{\n}"))

    with pytest.raises(MetadataParseError):
        locator.locate_profile()


def test_locate_profile_without_team_identifier_is_accepted(config):
    profile = write_profile(config)
    text = """{
  "Entitlements" => {
    "com.apple.application-identifier" => "T6YG6KXA9D.com.nexuscountdown"
  }
}"""
    locator, _ = locator_for(config, signing_responses(profile_text=text))

    assert locator.locate_profile() == profile.resolve()


def test_locate_profile_wrong_team(config):
    write_profile(config)
    text = PROFILE_TEXT.replace('0 => "T6YG6KXA9D"', '0 => "ZZZZZZZZZZ"')
    locator, _ = locator_for(config, signing_responses(profile_text=text))

    with pytest.raises(IdentifierMismatchError) as excinfo:
        locator.locate_profile()

    assert excinfo.value.found == "ZZZZZZZZZZ"


def test_locate_profile_decode_failure(config):
    write_profile(config)
    responses = signing_responses()
    responses[("security", "cms")] = failed("security: failed to decode message")
    locator, _ = locator_for(config, responses)

    with pytest.raises(ExternalToolError):
        locator.locate_profile()


def test_mas_artifacts_from_marker_files(config, repo, tmp_path):
    app = make_app(tmp_path / "elsewhere")
    pkg = tmp_path / "elsewhere" / "Nexus Countdown.pkg"
    pkg.write_bytes(b"xar!")
    (repo / ".mas-app-path").write_text(str(app))
    (repo / ".mas-pkg-path").write_text(str(pkg))
    locator, runner = locator_for(config)

    artifacts = locator.locate_mas_artifacts()

    assert artifacts.app_path == app
    assert artifacts.pkg_path == pkg
    assert runner.calls == []


def test_marker_app_ignores_package_left_in_dist(config, repo, dist):
    app = make_app(dist / "mas")
    (dist / "mas" / "Nexus Countdown-0.9.0.pkg").write_bytes(b"xar!")
    (repo / ".mas-app-path").write_text(str(app))
    locator, runner = locator_for(config)

    artifacts = locator.locate_mas_artifacts()

    assert artifacts.app_path == app
    assert artifacts.pkg_path is None
    assert runner.calls == []


def test_mas_artifacts_expanded_from_package(config, repo, dist):
    pkg = dist / "mas" / "Nexus Countdown-1.0.0.pkg"
    pkg.parent.mkdir()
    pkg.write_bytes(b"xar!")

    def expand(*cmd, input=None):
        make_app(repo / ".mas-verify-temp" / "pkg-expanded" / "Payload")
        return ok()

    responses = signing_responses()
    responses[("pkgutil", "--expand-full")] = expand
    locator, runner = locator_for(config, responses)
    stale = repo / ".mas-verify-temp" / "stale"
    stale.mkdir(parents=True)

    with locator.locate_mas_artifacts() as artifacts:
        assert artifacts.pkg_path == pkg
        assert artifacts.app_path.name == "Nexus Countdown.app"
        assert "Payload" in artifacts.app_path.parts
        assert not stale.exists()

    assert runner.commands("pkgutil") == [
        [
            "pkgutil",
            "--expand-full",
            str(pkg),
            str(repo / ".mas-verify-temp" / "pkg-expanded"),
        ]
    ]
    assert not (repo / ".mas-verify-temp").exists()


def test_mas_artifacts_fall_back_to_dist_when_expansion_fails(config, repo, dist):
    pkg = dist / "Nexus Countdown-1.0.0.pkg"
    pkg.write_bytes(b"xar!")
    app = make_app(dist / "mac-universal")
    responses = signing_responses()
    responses[("pkgutil", "--expand-full")] = failed("Error: could not expand")
    locator, _ = locator_for(config, responses)

    artifacts = locator.locate_mas_artifacts()

    assert artifacts.app_path == app
    assert artifacts.pkg_path == pkg


def test_mas_artifacts_prefer_mas_dist_dir(config, dist):
    make_app(dist / "mac")
    expected = make_app(dist / "mas")
    locator, _ = locator_for(config)

    artifacts = locator.locate_mas_artifacts()

    assert artifacts.app_path == expected
    assert artifacts.pkg_path is None


def test_mas_artifacts_not_found(config, repo, dist):
    locator, _ = locator_for(config)

    with pytest.raises(ArtifactNotFoundError, match="Could not locate MAS app bundle"):
        locator.locate_mas_artifacts()

    assert not (repo / ".mas-verify-temp").exists()
