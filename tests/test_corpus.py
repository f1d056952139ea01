"""Tests for sysmlcheck.corpus."""

from __future__ import annotations

from sysmlcheck.corpus import (
    extract_block,
    extract_source_references,
    find_covered_files,
    join_corpus,
    normalize_path,
    scan_corpus,
    split_corpus,
)
from sysmlcheck.models import ModelFile
from tests._fixtures.repo_builder import RepoBuilder, source_file_ref


def test_extract_block_returns_nested_content() -> None:
    text = "part def Order { attribute id : UUID; state s { entry; } }"

    block = extract_block(text, 0)

    assert block == " attribute id : UUID; state s { entry; } "


def test_extract_block_starts_at_offset() -> None:
    text = "item def A { x } item def B { y }"

    assert extract_block(text, text.index("item def B")) == " y "


def test_extract_block_ignores_braces_in_strings_and_comments() -> None:
    text = 'part def P {\n  doc /* a { brace */\n  // stray }\n  :>> path = "src/{a,b}.ts";\n}\ntrailing'

    block = extract_block(text, 0)

    assert block.endswith(':>> path = "src/{a,b}.ts";\n')
    assert "trailing" not in block


def test_extract_block_unclosed_returns_remainder() -> None:
    assert extract_block("state def S { state a; state b;", 0) == " state a; state b;"


def test_extract_block_without_brace_returns_rest_of_text() -> None:
    assert extract_block("no braces here", 3) == "braces here"


def test_split_corpus_uses_marker_lines() -> None:
    text = "preamble\n=== a/one.sysml ===\npackage One;\n=== two.sysml ===\npackage Two;\n"

    files = split_corpus(text)

    assert [f.path for f in files] == ["a/one.sysml", "two.sysml"]
    assert "package One;" in files[0].content
    assert "package Two;" in files[1].content
    assert "preamble" not in files[0].content


def test_join_corpus_is_split_back_into_the_same_paths() -> None:
    files = [ModelFile("a.sysml", "package A;\n"), ModelFile("b/c.sysml", "package C;\n")]

    joined = join_corpus(files)
    parsed = split_corpus(joined)

    assert [f.path for f in parsed] == ["a.sysml", "b/c.sysml"]
    assert [f.content.strip() for f in parsed] == ["package A;", "package C;"]


def test_normalize_path_strips_dot_prefix_and_backslashes() -> None:
    assert normalize_path("./src/app.ts") == "src/app.ts"
    assert normalize_path("src\\lib\\util.ts") == "src/lib/util.ts"


def test_extract_source_references_accepts_both_spellings() -> None:
    text = (
        'metadata @SourceFile { :>> path = "./src/a.ts"; }\n'
        '@SourceFile { path = "src/b.ts"; }\n'
    )

    assert extract_source_references(text) == ["src/a.ts", "src/b.ts"]


def test_find_covered_files_limits_to_subtree() -> None:
    files = [
        ModelFile("context/app.sysml", source_file_ref("src/a.ts")),
        ModelFile("structure/mod.sysml", source_file_ref("src/b.ts")),
        ModelFile("contextual/other.sysml", source_file_ref("src/c.ts")),
    ]

    assert find_covered_files(files) == {"src/a.ts", "src/b.ts", "src/c.ts"}
    assert find_covered_files(files, "context") == {"src/a.ts"}


def test_scan_corpus_reads_sysml_files_sorted(repo_builder: RepoBuilder) -> None:
    repo_builder.write_model(
        {
            "structure/b.sysml": "package B;",
            "context/a.sysml": "package A;",
            "notes.txt": "ignored",
        }
    )

    files = scan_corpus(repo_builder.model_root)

    assert [f.path for f in files] == ["context/a.sysml", "structure/b.sysml"]
    assert files[0].content == "package A;"


def test_scan_corpus_skips_undecodable_files(repo_builder: RepoBuilder) -> None:
    repo_builder.write_model({"good.sysml": "package Good;"})
    (repo_builder.model_root / "bad.sysml").write_bytes(b"\xff\xfe\xfa")

    files = scan_corpus(repo_builder.model_root)

    assert [f.path for f in files] == ["good.sysml"]


def test_scan_corpus_on_missing_directory_is_empty(repo_builder: RepoBuilder) -> None:
    assert scan_corpus(repo_builder.root / ".sysml") == []
