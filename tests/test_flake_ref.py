import logging

import pytest
from flake_ref import (
    FlakeRef,
    FlakeRefBuilder,
    ForgePlatform,
    Git,
    GitForge,
    IncompatibleParameterError,
    Indirect,
    InvalidBooleanParameterError,
    InvalidIndirectIdError,
    MalformedAttributePathError,
    MalformedParameterError,
    Path,
    RefKind,
    Reference,
    Revision,
    Tarball,
    UnrecognizedSchemeError,
    canonical,
    convert_or_parse,
    parse,
    serialize,
)

REV = "8c3f2e1d0b9a8c3f2e1d0b9a8c3f2e1d0b9a8c3f"


def test_github_scenario():
    ref = parse("github:nixos/nixpkgs")
    assert ref.ref_type == GitForge(ForgePlatform.GITHUB, "nixos", "nixpkgs", None, None)
    assert ref.kind is RefKind.GIT_FORGE
    assert ref.params == {}
    assert serialize(ref) == "github:nixos/nixpkgs"


def test_github_ref_and_rev_scenarios():
    assert parse("github:nixos/nixpkgs/nixos-23.05").ref_or_rev == Reference("nixos-23.05")
    assert parse(f"github:nixos/nixpkgs/{REV}").ref_or_rev == Revision(REV)


def test_git_scenario():
    ref = parse("git+https://example.com/repo.git?ref=main&dir=sub")
    assert ref.ref_type == Git("https://example.com/repo.git", Reference("main"))
    assert ref.get_param("dir") == "sub"
    assert ref.get_param("ref") is None


def test_bare_text_with_space():
    with pytest.raises(InvalidIndirectIdError):
        parse("not-a-scheme-at-all-but-has space")


@pytest.mark.parametrize("text", [
    "github:nixos/nixpkgs",
    "github:nixos/nixpkgs/nixos-23.05",
    f"github:nixos/nixpkgs/{REV}",
    f"github:o/r?rev={REV}&ref=main",
    f"github:o/r?ref={REV}",
    "gitlab:group/project/release/2.0?host=gitlab.example.org",
    "sourcehut:~sircmpwn/hare",
    "git+https://example.com/repo.git?ref=main&dir=sub",
    f"git+ssh://git@example.com/repo?rev={REV}&shallow=1",
    "git://example.com/repo",
    "hg+https://hg.example.com/repo?ref=default",
    "https://example.com/src.tar.gz?narHash=sha256-abc%3D",
    "tarball+https://example.com/download",
    "file:///tmp/data.json",
    "file+https://example.com/data.json",
    "path:/home/user/flake?dir=sub",
    "flake:nixpkgs/nixos-23.05",
    'flake:nixpkgs#"hello.world".default',
])
def test_canonical_text_is_a_fixed_point(text):
    assert canonical(text) == text


@pytest.mark.parametrize("text,expected", [
    ("github:NixOS/nixpkgs?ref=nixos-23.05", "github:NixOS/nixpkgs/nixos-23.05"),
    ("GitHub:o/r?host=github.com", "github:o/r"),
    (f"github:o/r?rev={REV.upper()}", f"github:o/r/{REV}"),
    ("github:o/r/", "github:o/r"),
    ("github:o/r?a=1&&b=2&", "github:o/r?a=1&b=2"),
    ("github:o/r?a=1&b=2&a=3", "github:o/r?a=3&b=2"),
    ("nixpkgs", "flake:nixpkgs"),
    ("nixpkgs/nixos-23.05", "flake:nixpkgs/nixos-23.05"),
    ("/home/user/flake", "path:/home/user/flake"),
    ("git+https://x/r?shallow=true", "git+https://x/r?shallow=1"),
    ("git+https://x/r?shallow=0", "git+https://x/r"),
    ("tarball+https://x/src.tar.gz", "https://x/src.tar.gz"),
    ("file+file:///x", "file:///x"),
    ("hg+hg://x/r", None),
])
def test_canonicalization(text, expected):
    if expected is None:
        with pytest.raises(UnrecognizedSchemeError):
            canonical(text)
    else:
        assert canonical(text) == expected


@pytest.mark.parametrize("text", [
    "GitHub:NixOS/nixpkgs?ref=main&dir=sub#hello",
    f"gitlab:o/r?host=GitLab.com&rev={REV.upper()}&ref=main",
    "git+HTTPS://example.com/r?shallow=TRUE&submodules=false",
    "./flake?dir=a%20b",
    "nixpkgs/release%2F23.05?narHash=x",
])
def test_serialization_is_idempotent(text):
    once = canonical(text)
    assert canonical(once) == once
    assert parse(once) == parse(text)


@pytest.mark.parametrize("ref", [
    FlakeRef.github("nixos", "nixpkgs"),
    FlakeRef.github("o", "r", Reference(REV)),
    FlakeRef.github("o", "r", Reference("feature?x#y")),
    FlakeRef.gitlab("o", "r", Reference("main"), host="gitlab.example.org:8443"),
    FlakeRef.sourcehut("~o", "r", Revision(REV)),
    FlakeRef(GitForge(ForgePlatform.GITHUB, "o", "r", Revision(REV)), {"ref": "main"}),
    FlakeRef.git("https://example.com/r.git", Reference("dev"), shallow=True),
    FlakeRef(Git("file:///srv/repo", Revision(REV)), {"ref": "main", "allRefs": "1"}),
    FlakeRef.mercurial("hg://example.com/r"),
    FlakeRef.tarball("https://example.com/src.tar.gz"),
    FlakeRef.tarball("file:///tmp/src"),
    FlakeRef.file("https://example.com/data.json"),
    FlakeRef(Path("./a b"), {"dir": "sub dir"}),
    FlakeRef.indirect("nixpkgs", Reference("50%")),
    FlakeRef(Indirect("nixpkgs"), {"x": "a b&c=d#e?f"}, ("a.b", "c d", "e")),
])
def test_round_trip(ref):
    assert parse(serialize(ref)) == ref


def test_params_are_read_only():
    ref = parse("path:/x?dir=sub")
    with pytest.raises(TypeError):
        ref.params["dir"] = "other"


def test_with_param_returns_new_reference():
    ref = parse("github:o/r")
    updated = ref.with_param("dir", "sub")
    assert str(updated) == "github:o/r?dir=sub"
    assert str(ref) == "github:o/r"
    assert str(updated.without_param("dir")) == "github:o/r"


def test_with_param_validates():
    with pytest.raises(IncompatibleParameterError):
        parse("path:/x").with_param("ref", "main")
    with pytest.raises(IncompatibleParameterError):
        parse("github:o/r").with_param("host", "example.org")
    with pytest.raises(InvalidBooleanParameterError):
        parse("https://x/src.tar.gz").with_param("submodules", "maybe")


def test_empty_param_key_rejected():
    with pytest.raises(MalformedParameterError) as exc_info:
        FlakeRef.github("o", "r").with_param("", "x")
    assert exc_info.value.pair == "=x"
    with pytest.raises(MalformedParameterError):
        FlakeRef(Path("/x"), {"": ""})


@pytest.mark.parametrize("key,value", [("dir", 1), (1, "sub"), ("dir", None)])
def test_non_string_params_rejected(key, value):
    with pytest.raises(TypeError):
        FlakeRef(Path("/x"), {key: value})
    with pytest.raises(TypeError):
        FlakeRef.github("o", "r").with_param(key, value)


def test_with_ref_or_rev():
    ref = parse("github:o/r?dir=sub")
    assert str(ref.with_ref_or_rev(Reference("main"))) == "github:o/r/main?dir=sub"
    assert str(ref.with_ref_or_rev(Revision(REV)).with_ref_or_rev(None)) == "github:o/r?dir=sub"
    with pytest.raises(IncompatibleParameterError):
        parse("path:/x").with_ref_or_rev(Reference("main"))


def test_with_ref_type_and_attr_path():
    ref = parse("github:o/r?dir=sub")
    moved = ref.with_ref_type(Indirect("r"))
    assert str(moved) == "flake:r?dir=sub"
    assert str(moved.with_attr_path(["packages", "default"])) == "flake:r?dir=sub#packages.default"


def test_equality_ignores_param_order():
    a = FlakeRef(Path("/x"), {"a": "1", "b": "2"})
    b = FlakeRef(Path("/x"), {"b": "2", "a": "1"})
    assert a == b
    assert hash(a) == hash(b)
    assert str(a) != str(b)
    assert a != FlakeRef(Path("/x"), {"a": "1"})
    assert a != "path:/x?a=1&b=2"


def test_equality_includes_attr_path():
    assert parse("nixpkgs#hello") != parse("nixpkgs")
    assert parse("nixpkgs#hello") == parse("flake:nixpkgs#hello")
    assert len({parse("nixpkgs"), parse("flake:nixpkgs"), parse("nixpkgs#hello")}) == 2


def test_repr():
    assert repr(parse("github:o/r")) == "FlakeRef('github:o/r')"


def test_accessors():
    assert parse("nixpkgs/unstable").id() == "nixpkgs"
    assert parse("github:nixos/nixpkgs").id() == "nixpkgs"
    assert parse("/x").id() is None
    assert parse("/x").ref_or_rev is None
    assert parse("nixpkgs#a.b").attr_path == ("a", "b")
    assert FlakeRef.from_string("flake:nixpkgs").to_string() == "flake:nixpkgs"


def test_constructor_validation():
    with pytest.raises(TypeError):
        FlakeRef("github:o/r")
    with pytest.raises(MalformedAttributePathError):
        FlakeRef(Indirect("nixpkgs"), attr_path=["a", ""])
    with pytest.raises(MalformedAttributePathError):
        FlakeRef(Indirect("nixpkgs"), attr_path=['say"hi'])


def test_builder():
    ref = (
        FlakeRefBuilder(GitForge(ForgePlatform.GITHUB, "nixos", "nixpkgs"))
        .ref("main")
        .dir("sub")
        .attr("packages", "x86_64-linux", "default")
        .build()
    )
    assert str(ref) == "github:nixos/nixpkgs/main?dir=sub#packages.x86_64-linux.default"

    ref = FlakeRefBuilder(Git("https://x/r")).rev(REV.upper()).nar_hash("sha256-abc").build()
    assert str(ref) == f"git+https://x/r?rev={REV}&narHash=sha256-abc"


def test_builder_rejects_ref_on_archive():
    with pytest.raises(IncompatibleParameterError):
        FlakeRefBuilder(Tarball("https://x/src.tar.gz")).ref("main")


@pytest.mark.parametrize("url,expected", [
    ("https://github.com/nixos/nixpkgs", FlakeRef.github("nixos", "nixpkgs")),
    ("https://www.github.com/nixos/nixpkgs.git", FlakeRef.github("nixos", "nixpkgs")),
    (
        "https://github.com/nixos/nixpkgs/tree/nixos-23.05",
        FlakeRef.github("nixos", "nixpkgs", Reference("nixos-23.05")),
    ),
    (
        f"https://github.com/nixos/nixpkgs/commit/{REV}",
        FlakeRef.github("nixos", "nixpkgs", Revision(REV)),
    ),
    (
        "https://gitlab.com/group/project/-/tree/main?dir=sub#hello",
        FlakeRef(
            GitForge(ForgePlatform.GITLAB, "group", "project", Reference("main")),
            {"dir": "sub"},
            ("hello",),
        ),
    ),
    ("https://git.sr.ht/~sircmpwn/hare", FlakeRef.sourcehut("~sircmpwn", "hare")),
    (
        "https://github.com/o/r/archive/main.tar.gz",
        FlakeRef.tarball("https://github.com/o/r/archive/main.tar.gz"),
    ),
    ("github:o/r", FlakeRef.github("o", "r")),
])
def test_convert_or_parse(url, expected):
    assert convert_or_parse(url) == expected


@pytest.mark.parametrize("url", [
    "https://example.com/repo",
    "https://github.com/nixos",
    "https://github.com/o/r/blob/main/README.md",
])
def test_convert_or_parse_falls_back(url):
    with pytest.raises(UnrecognizedSchemeError):
        convert_or_parse(url)


def test_convert_or_parse_logs_conversion(caplog):
    with caplog.at_level(logging.DEBUG, logger="flake_ref"):
        convert_or_parse("https://github.com/nixos/nixpkgs")
    assert "github:nixos/nixpkgs" in caplog.text
