import pytest
import tomlkit

from cargo_hack.manifest import (
    Manifest,
    ManifestError,
    ManifestPackage,
    parse_features,
    parse_package,
    remove_dev_deps,
    remove_private_crates,
)

DEV_DEPS_CASES = [
    (
        "a",
        "[package]\n[dependencies]\n[[example]]\n[dev-dependencies.serde]\n[dev-dependencies]",
        "[package]\n[dependencies]\n[[example]]\n",
    ),
    (
        "b",
        "[package]\n[dependencies]\n[[example]]\n[dev-dependencies.serde]\n[dev-dependencies]\n",
        "[package]\n[dependencies]\n[[example]]\n",
    ),
    (
        "c",
        '[dev-dependencies]\nfoo = { features = [] }\nbar = "0.1"\n',
        "",
    ),
    (
        "d",
        "[dev-dependencies.foo]\nfeatures = []\n\n"
        "[dev-dependencies]\nbar = { features = [], a = [] }\n\n"
        "[dependencies]\nbar = { features = [], a = [] }\n",
        "\n[dependencies]\nbar = { features = [], a = [] }\n",
    ),
    (
        "many_lines",
        "[package]\n\n\n\n[dev-dependencies.serde]\n\n\n[dev-dependencies]\n",
        "[package]\n",
    ),
    (
        "target_deps1",
        "[package]\n\n[target.'cfg(unix)'.dev-dependencies]\n\n[dependencies]\n",
        "[package]\n\n[dependencies]\n",
    ),
    (
        "target_deps2",
        "[package]\n\n"
        "[target.'cfg(unix)'.dev-dependencies]\nfoo = \"0.1\"\n\n"
        "[target.'cfg(unix)'.dev-dependencies.bar]\n\n"
        "[dev-dependencies]\nfoo = \"0.1\"\n\n"
        "[target.'cfg(unix)'.dependencies]\nfoo = \"0.1\"\n",
        "[package]\n\n[target.'cfg(unix)'.dependencies]\nfoo = \"0.1\"\n",
    ),
    (
        "target_deps3",
        "[package]\n\n[target.'cfg(unix)'.dependencies]\n\n[dev-dependencies]\n",
        "[package]\n\n[target.'cfg(unix)'.dependencies]\n",
    ),
    (
        "target_deps4",
        "[package]\n\n[target.'cfg(unix)'.dev-dependencies]\n",
        "[package]\n",
    ),
    (
        "not_table_multi_line",
        "[package]\nfoo = [\n    ['dev-dependencies'],\n    [\"dev-dependencies\"]\n]\n",
        "[package]\nfoo = [\n    ['dev-dependencies'],\n    [\"dev-dependencies\"]\n]\n",
    ),
]


@pytest.mark.parametrize(
    "source, expected", [(s, e) for _, s, e in DEV_DEPS_CASES], ids=[n for n, _, _ in DEV_DEPS_CASES]
)
def test_remove_dev_deps(source, expected):
    assert remove_dev_deps(source) == expected


def test_remove_dev_deps_dotted_keys():
    source = (
        "[package]\nname = \"x\"\n"
        "[target]\n'cfg(unix)'.dev-dependencies.foo = \"1\"\n"
        "'cfg(unix)'.dependencies.bar = \"1\"\n"
    )
    assert remove_dev_deps(source) == (
        "[package]\nname = \"x\"\n[target]\n'cfg(unix)'.dependencies.bar = \"1\"\n"
    )


def test_remove_dev_deps_leaves_other_documents_untouched():
    source = '# top\n[package]\nname = "x" # trailing\n\n[dependencies]\nserde = "1"\n'
    assert remove_dev_deps(source) == source


def test_remove_dev_deps_result_is_valid_toml():
    result = remove_dev_deps(DEV_DEPS_CASES[6][1])
    parsed = tomlkit.parse(result).unwrap()
    assert parsed == {"package": {}, "target": {"cfg(unix)": {"dependencies": {"foo": "0.1"}}}}


@pytest.mark.parametrize("publish, expected", [("false", False), ("true", True), ("[]", False), ('["x"]', True)])
def test_parse_package_publish_old_cargo(publish, expected):
    doc = tomlkit.parse(f'[package]\nname = "x"\npublish = {publish}\n')
    assert parse_package(doc, 38).publish is expected


def test_parse_package_publish_missing_means_unrestricted():
    doc = tomlkit.parse('[package]\nname = "x"\n')
    assert parse_package(doc, 38).publish is True


def test_parse_package_new_cargo_uses_metadata():
    doc = tomlkit.parse('[package]\npublish = false\nrust-version = "1.60"\n')
    assert parse_package(doc, 58) == ManifestPackage(None, None, False)


def test_parse_package_rust_version_old_cargo():
    doc = tomlkit.parse('[package]\nrust-version = "1.56"\n')
    package = parse_package(doc, 57)
    assert package.rust_version == "1.56"
    assert package.rust_version_in_manifest is True


def test_parse_package_rust_version_missing_old_cargo():
    doc = tomlkit.parse('[package]\nname = "x"\n')
    assert parse_package(doc, 40) == ManifestPackage(None, None, True)


@pytest.mark.parametrize(
    "text, version, field",
    [
        ('[package]\npublish = "x"\n', 38, "publish"),
        ("[package]\nrust-version = 1\n", 57, "rust-version"),
        ('name = "x"\n', 60, "package"),
        ("package = { name = \"x\" }\n", 60, "package"),
    ],
)
def test_parse_package_errors(text, version, field):
    with pytest.raises(ManifestError) as info:
        parse_package(tomlkit.parse(text), version)
    assert info.value.field == field


def test_parse_features_sorted_and_filtered():
    doc = tomlkit.parse('[features]\nz = ["a"]\ndefault = ["z", 1]\na = []\n')
    assert parse_features(doc) == {"a": [], "default": ["z"], "z": ["a"]}
    assert list(parse_features(doc)) == ["a", "default", "z"]


def test_parse_features_missing():
    assert parse_features(tomlkit.parse('[package]\nname = "x"\n')) == {}


@pytest.mark.parametrize("text", ['[features]\na = "b"\n', "features = { a = [] }\n"])
def test_parse_features_errors(text):
    with pytest.raises(ManifestError) as info:
        parse_features(tomlkit.parse(text))
    assert info.value.field == "features"


def test_manifest_load(tmp_path):
    path = tmp_path / "Cargo.toml"
    text = '[package]\nname = "x"\nrust-version = "1.50"\n\n[features]\na = ["b"]\nb = []\n'
    path.write_text(text, encoding="utf-8")
    manifest = Manifest.load(path, 45)
    assert manifest.raw == text
    assert manifest.package == ManifestPackage(None, "1.50", True)
    assert manifest.features == {"a": ["b"], "b": []}
    assert tomlkit.dumps(manifest.doc) == text


def test_manifest_load_invalid_toml(tmp_path):
    path = tmp_path / "Cargo.toml"
    path.write_text("[package\n", encoding="utf-8")
    with pytest.raises(ManifestError, match="as toml"):
        Manifest.load(path, 70)


def test_manifest_load_bad_field_names_path(tmp_path):
    path = tmp_path / "Cargo.toml"
    path.write_text('[package]\npublish = "x"\n', encoding="utf-8")
    with pytest.raises(ManifestError) as info:
        Manifest.load(path, 30)
    assert info.value.field == "publish"
    assert str(info.value) == f"failed to parse `publish` field from manifest `{path}`"


def _make_crate(root, name):
    manifest = root / name / "Cargo.toml"
    manifest.parent.mkdir(parents=True)
    manifest.write_text(f'[package]\nname = "{name}"\n', encoding="utf-8")
    return manifest


def test_remove_private_crates_from_members(tmp_path):
    private = _make_crate(tmp_path, "a")
    _make_crate(tmp_path, "b")
    doc = tomlkit.parse('[workspace]\nmembers = ["a", "b"]\n')
    remove_private_crates(doc, tmp_path, {private})
    parsed = tomlkit.parse(tomlkit.dumps(doc)).unwrap()
    assert parsed == {"workspace": {"members": ["b"]}}


def test_remove_private_crates_glob_adds_exclude(tmp_path):
    private = _make_crate(tmp_path, "crates/c")
    doc = tomlkit.parse('[workspace]\nmembers = ["crates/*"]\n')
    remove_private_crates(doc, tmp_path, [private])
    parsed = tomlkit.parse(tomlkit.dumps(doc)).unwrap()
    assert parsed["workspace"]["members"] == ["crates/*"]
    assert parsed["workspace"]["exclude"] == [str(tmp_path / "crates" / "c")]


def test_remove_private_crates_appends_to_existing_exclude(tmp_path):
    private = _make_crate(tmp_path, "crates/c")
    doc = tomlkit.parse('[workspace]\nmembers = ["crates/*"]\nexclude = ["old"]\n')
    remove_private_crates(doc, tmp_path, [private])
    parsed = tomlkit.parse(tomlkit.dumps(doc)).unwrap()
    assert parsed["workspace"]["exclude"] == ["old", str(tmp_path / "crates" / "c")]


def test_remove_private_crates_without_workspace(tmp_path):
    private = _make_crate(tmp_path, "a")
    text = '[package]\nname = "root"\n'
    doc = tomlkit.parse(text)
    remove_private_crates(doc, tmp_path, [private])
    assert tomlkit.dumps(doc) == text