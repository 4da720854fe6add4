import logging
from pathlib import Path

import httpx
import pytest

from locator.cache import ContentCache
from locator.errors import (
    HashMismatchError,
    LocationNotFoundError,
    NotRelativeError,
    PathEscapesRepositoryError,
)
from locator.resolver import Resolver, walk_in_repository
from locator.addressing import parse_repository
from locator.types import FileReference, RelativeRef

from tests.infrastructure import FakeGit, sha256_text, write

REPO = "git@github.com:company/repo.git"


@pytest.fixture
def contract_dir(tmp_path: Path) -> Path:
    d = tmp_path / "x"
    write(d / "contract.dhall", "{ params = ./params.dhall }\n")
    write(d / "params.dhall", "{ name = \"Alice\" }\n")
    return d


class TestLocalResolution:

    def test_absolute_local_file(self, resolver: Resolver, contract_dir: Path):
        ref = resolver.resolve(str(contract_dir / "contract.dhall"))
        assert ref.location == str(contract_dir / "contract.dhall")
        assert ref.local_path == contract_dir / "contract.dhall"
        assert ref.hash == sha256_text("{ params = ./params.dhall }\n")

    def test_relative_with_matching_hash(self, resolver: Resolver, contract_dir: Path):
        base = resolver.resolve(str(contract_dir / "contract.dhall"))
        rel = RelativeRef("./params.dhall", sha256_text("{ name = \"Alice\" }\n"))
        ref = resolver.resolve_relative(base, rel)
        assert ref.local_path == contract_dir / "params.dhall"
        assert ref.location == str(contract_dir / "params.dhall")
        assert ref.hash == rel.hash

    def test_relative_with_wrong_hash_fails(self, resolver: Resolver, contract_dir: Path, caplog):
        base = resolver.resolve(str(contract_dir / "contract.dhall"))
        rel = RelativeRef("./params.dhall", "0" * 64)
        with caplog.at_level(logging.ERROR, logger="locator.resolver"):
            with pytest.raises(HashMismatchError) as ei:
                resolver.resolve_relative(base, rel)
        assert ei.value.expected == "0" * 64
        assert ei.value.actual == sha256_text("{ name = \"Alice\" }\n")
        assert "Hash mismatch" in caplog.text

    def test_wrong_hash_only_warns_when_not_checking(self, resolver: Resolver, contract_dir: Path, caplog):
        base = resolver.resolve(str(contract_dir / "contract.dhall"))
        with caplog.at_level(logging.WARNING, logger="locator.resolver"):
            ref = resolver.resolve_relative(base, RelativeRef("./params.dhall", "0" * 64), check_hash=False)
        assert ref.local_path == contract_dir / "params.dhall"
        assert "has changed" in caplog.text

    def test_relative_hash_is_mandatory(self, resolver: Resolver, contract_dir: Path):
        base = resolver.resolve(str(contract_dir / "contract.dhall"))
        with pytest.raises(HashMismatchError):
            resolver.resolve_relative(base, RelativeRef("./params.dhall"))

    def test_absolute_hash_is_optional(self, resolver: Resolver, contract_dir: Path):
        ref = resolver.resolve(str(contract_dir / "params.dhall"), "")
        assert ref.hash

    def test_absolute_hash_mismatch(self, resolver: Resolver, contract_dir: Path):
        with pytest.raises(HashMismatchError):
            resolver.resolve(str(contract_dir / "params.dhall"), "f" * 64)
        ref = resolver.resolve(str(contract_dir / "params.dhall"), "f" * 64, check_hash=False)
        assert ref.hash != "f" * 64

    def test_uppercase_expected_hash_matches(self, resolver: Resolver, contract_dir: Path):
        expected = sha256_text("{ name = \"Alice\" }\n").upper()
        ref = resolver.resolve(str(contract_dir / "params.dhall"), expected)
        assert ref.hash == expected.lower()

    def test_bare_name_and_parent_paths_are_relative(self, resolver: Resolver, tmp_path: Path):
        write(tmp_path / "a" / "b" / "base.json", "{}")
        write(tmp_path / "a" / "sibling.json", "S")
        write(tmp_path / "a" / "b" / "near.json", "N")
        base = resolver.resolve(str(tmp_path / "a" / "b" / "base.json"))

        up = resolver.resolve_relative(base, RelativeRef("../sibling.json", sha256_text("S")))
        assert up.local_path == tmp_path / "a" / "sibling.json"
        bare = resolver.resolve_relative(base, RelativeRef("near.json", sha256_text("N")))
        assert bare.local_path == tmp_path / "a" / "b" / "near.json"

    def test_missing_file(self, resolver: Resolver, tmp_path: Path):
        with pytest.raises(LocationNotFoundError):
            resolver.resolve(str(tmp_path / "nope.json"))

    def test_directory_is_not_a_file(self, resolver: Resolver, tmp_path: Path):
        with pytest.raises(LocationNotFoundError):
            resolver.resolve(str(tmp_path))

    def test_resolving_twice_gives_equal_references(self, resolver: Resolver, contract_dir: Path):
        a = resolver.resolve(str(contract_dir / "params.dhall"))
        b = resolver.resolve(str(contract_dir / "params.dhall"))
        assert a == b


class TestNotRelative:

    @pytest.mark.parametrize("loc", [
        "/etc/passwd",
        "https://example.com/a.json",
        "git://github.com:company/repo.git/a.json",
    ])
    def test_absolute_locations_are_rejected(self, resolver: Resolver, tmp_path: Path, loc):
        write(tmp_path / "base.json", "{}")
        base = resolver.resolve(str(tmp_path / "base.json"))
        with pytest.raises(NotRelativeError) as ei:
            resolver.resolve_relative(base, RelativeRef(loc, "abc"))
        assert ei.value.location == loc


class TestWebResolution:

    def _resolver(self, tmp_path: Path, routes: dict) -> Resolver:
        def handler(request: httpx.Request) -> httpx.Response:
            body = routes.get(str(request.url))
            return httpx.Response(200, content=body) if body is not None else httpx.Response(404)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        return Resolver(ContentCache(root=tmp_path / "cache", git=FakeGit(), http_client=client))

    def test_relative_against_web_base(self, tmp_path: Path):
        resolver = self._resolver(tmp_path, {
            "https://example.com/a/b.dhall": b"base",
            "https://example.com/a/c.dhall": b"sibling",
        })
        base = resolver.resolve("https://example.com/a/b.dhall")
        assert base.location == "https://example.com/a/b.dhall"
        ref = resolver.resolve_relative(base, RelativeRef("./c.dhall", sha256_text("sibling")))
        assert ref.location == "https://example.com/a/c.dhall"
        assert ref.local_path.read_bytes() == b"sibling"

    def test_parent_segments_follow_url_rules(self, tmp_path: Path):
        resolver = self._resolver(tmp_path, {
            "https://example.com/a/b/base.json": b"{}",
            "https://example.com/a/p.json": b"P",
        })
        base = resolver.resolve("https://example.com/a/b/base.json")
        ref = resolver.resolve_relative(base, RelativeRef("../p.json", sha256_text("P")))
        assert ref.location == "https://example.com/a/p.json"


class TestRepositoryResolution:

    def test_absolute_repository_location(self, resolver: Resolver, fake_git: FakeGit):
        fake_git.add_remote(REPO, {"docs/params.json": "P"}, ref="v1")
        ref = resolver.resolve("git://github.com:company/repo.git/docs/params.json#v1", sha256_text("P"))
        assert ref.location == "git://github.com:company/repo.git/docs/params.json#v1"
        assert ref.local_path.read_text(encoding="utf-8") == "P"

    def test_relative_sibling_keeps_ref(self, resolver: Resolver, fake_git: FakeGit):
        fake_git.add_remote(REPO, {"a/contract.json": "{}", "b/params.json": "P"}, ref="v1")
        base = resolver.resolve("git://github.com:company/repo.git/a/contract.json#v1")
        ref = resolver.resolve_relative(base, RelativeRef("../b/params.json", sha256_text("P")))
        assert ref.location == "git://github.com:company/repo.git/b/params.json#v1"
        assert ref.local_path.read_text(encoding="utf-8") == "P"
        assert fake_git.count("clone") == 1

    def test_escaping_the_repository_root(self, resolver: Resolver, fake_git: FakeGit):
        fake_git.add_remote(REPO, {"a/contract.json": "{}"})
        base = resolver.resolve("git://github.com:company/repo.git/a/contract.json")
        with pytest.raises(PathEscapesRepositoryError):
            resolver.resolve_relative(base, RelativeRef("../../outside.json", "abc"))

    def test_https_repository_clone_url(self, resolver: Resolver, fake_git: FakeGit):
        fake_git.add_remote("https://github.com/company/repo.git", {"x.txt": "X"})
        ref = resolver.resolve("git+https://github.com/company/repo.git/x.txt")
        assert ref.local_path.read_text(encoding="utf-8") == "X"
        assert ("clone", "https://github.com/company/repo.git") in fake_git.calls

    def test_relative_resolution_refetches(self, resolver: Resolver, fake_git: FakeGit, cache: ContentCache):
        fake_git.add_remote(REPO, {"a/contract.json": "{}", "a/p.json": "P"})
        base = resolver.resolve("git://github.com:company/repo.git/a/contract.json")
        before = cache.stats.fetches
        resolver.resolve_relative(base, RelativeRef("./p.json", sha256_text("P")))
        assert cache.stats.fetches > before


class TestWalkInRepository:

    def _base(self, path: str):
        return parse_repository("git://github.com:company/repo.git").with_in_repo_path(path)

    @pytest.mark.parametrize("base, rel, expected", [
        ("a/b/c.json", "./d.json", "a/b/d.json"),
        ("a/b/c.json", "../d.json", "a/d.json"),
        ("a/b/c.json", "../../d.json", "d.json"),
        ("a/b/c.json", "e/./f.json", "a/b/e/f.json"),
        ("c.json", "d.json", "d.json"),
        ("a/c.json", "x/../y.json", "a/y.json"),
    ])
    def test_walk(self, base, rel, expected):
        assert walk_in_repository(self._base(base), rel) == expected

    @pytest.mark.parametrize("base, rel", [
        ("c.json", "../d.json"),
        ("a/b/c.json", "../../../d.json"),
    ])
    def test_walk_escapes(self, base, rel):
        with pytest.raises(PathEscapesRepositoryError):
            walk_in_repository(self._base(base), rel)


def test_file_reference_helpers(resolver: Resolver, contract_dir: Path, tmp_path: Path):
    ref = resolver.resolve(str(contract_dir / "params.dhall"))
    assert isinstance(ref, FileReference)
    assert ref.filename == "params.dhall"
    assert ref.directory == contract_dir
    assert ref.local_rel_path(tmp_path) == "x/params.dhall"
    copied = ref.copy_to(tmp_path / "out" / "p.dhall")
    assert copied.read_text(encoding="utf-8") == ref.read_text()
