"""Tests for reducing changed files to package descriptors."""

from __future__ import annotations

import random
from typing import List

import pytest

from monomatrix.classifier import PackageClassifier, classify, package_name
from monomatrix.globbing import MalformedGlobError
from monomatrix.models import GlobRuleSet, PackageDescriptor

FILES = ["packages/a/x.ts", "packages/a/y.ts", "packages/b/z.ts"]


def test_classify_groups_files_by_first_segment_below_root() -> None:
    result = classify(FILES, "packages/", GlobRuleSet(include="*", exclude=""))

    assert result == [
        PackageDescriptor(name="a", path="packages/a"),
        PackageDescriptor(name="b", path="packages/b"),
    ]


def test_exclude_glob_drops_matching_packages() -> None:
    result = classify(FILES, "packages/", GlobRuleSet(include="*", exclude="**/b/**"))

    assert [package.name for package in result] == ["a"]


def test_include_glob_narrows_files() -> None:
    files = FILES + ["README.md"]

    result = classify(files, "/", GlobRuleSet(include="**/*.ts"))

    assert [package.name for package in result] == ["packages"]
    assert all(package.name != "README.md" for package in result)


def test_include_zero_matches_yields_empty_result() -> None:
    assert classify(FILES, "packages/", GlobRuleSet(include="**/*.go")) == []


def test_empty_file_list_yields_empty_result() -> None:
    assert classify([], "packages/", GlobRuleSet()) == []


def test_result_membership_is_independent_of_input_order() -> None:
    files = [f"packages/{name}/src/file{index}.py" for name in "abcdef" for index in range(3)]
    expected = {package.name for package in classify(files, "packages")}

    shuffled = list(files)
    random.Random(1234).shuffle(shuffled)

    assert {package.name for package in classify(shuffled, "packages")} == expected


def test_first_occurrence_order_is_preserved() -> None:
    files = ["packages/b/1.ts", "packages/a/1.ts", "packages/b/2.ts", "packages/c/1.ts"]

    result = classify(files, "packages")

    assert [package.name for package in result] == ["b", "a", "c"]


def test_files_directly_in_root_use_their_own_name() -> None:
    result = classify(["packages/tsconfig.json", "packages/a/x.ts"], "packages/")

    assert result == [
        PackageDescriptor(name="tsconfig.json", path="packages/tsconfig.json"),
        PackageDescriptor(name="a", path="packages/a"),
    ]


def test_default_root_treats_top_level_directories_as_packages() -> None:
    result = classify(["api/main.py", "web/index.ts", "api/util.py", "README.md"])

    assert result == [
        PackageDescriptor(name="api", path="/api"),
        PackageDescriptor(name="web", path="/web"),
        PackageDescriptor(name="README.md", path="/README.md"),
    ]


def test_files_outside_root_are_ignored() -> None:
    result = classify(["services/api/main.py", "packages/a/x.ts"], "packages")

    assert [package.name for package in result] == ["a"]


def test_nested_paths_reduce_to_first_segment() -> None:
    result = classify(["libs/core/src/deep/nested/file.rs"], "libs")

    assert result == [PackageDescriptor(name="core", path="libs/core")]


@pytest.mark.parametrize(
    ("path", "root", "expected"),
    [
        ("packages/a/x.ts", "packages", "a"),
        ("packages/x.ts", "packages", "x.ts"),
        ("packages", "packages", "packages"),
        ("libs/a/x.ts", "packages", None),
        ("packagesX/a.ts", "packages", None),
        ("a/b.ts", "", "a"),
        ("/a/b.ts", "", "a"),
    ],
)
def test_package_name(path: str, root: str, expected: str | None) -> None:
    assert package_name(path, root) == expected


def test_malformed_glob_surfaces_on_compile() -> None:
    classifier = PackageClassifier()

    with pytest.raises(MalformedGlobError):
        classifier.compile(GlobRuleSet(include="packages/{a,b"))

    with pytest.raises(MalformedGlobError):
        classifier.compile(GlobRuleSet(include="*", exclude="[oops"))


class _RecordingMatcher:
    def __init__(self) -> None:
        self.patterns: List[str] = []

    def compile(self, pattern: str):  # type: ignore[no-untyped-def]
        self.patterns.append(pattern)
        return lambda path: path.endswith(pattern)


def test_classifier_uses_injected_matcher_and_skips_wildcard_include() -> None:
    matcher = _RecordingMatcher()
    classifier = PackageClassifier(matcher)

    result = classifier.classify(FILES, "packages", GlobRuleSet(include="*", exclude="z.ts"))

    assert matcher.patterns == ["z.ts"]
    assert [package.name for package in result] == ["a"]


def test_compiled_rules_can_be_reused() -> None:
    classifier = PackageClassifier()
    compiled = classifier.compile(GlobRuleSet(include="**/*.ts", exclude="**/a/**"))

    assert classifier.classify(FILES, "packages", compiled) == [
        PackageDescriptor(name="b", path="packages/b")
    ]
    assert classifier.classify(["packages/c/d.ts"], "packages", compiled) == [
        PackageDescriptor(name="c", path="packages/c")
    ]
