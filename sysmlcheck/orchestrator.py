"""Coordinates validation, coverage and diagram runs against a repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .config import SysmlCheckConfig, load_config
from .corpus import scan_corpus, split_corpus
from .coverage import accept_manifest, check_cycle_coverage
from .diagrams import DiagramPass, build_passes, extract_diagrams, write_diagrams
from .grammar import GrammarValidator, Runner
from .logging import get_logger
from .manifest import load_manifest, manifest_path
from .models import CoverageResult, Diagram, Manifest, ManifestGateResult, ModelFile, ValidationResult
from .repo_scanner import SourceScanner
from .validators import StructuralValidator


@dataclass
class DiagramRun:
    """Diagrams extracted in one run and the files written for them."""

    diagrams: List[Diagram] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)
    output_dir: Optional[Path] = None


class Auditor:
    """Facade over the validator, coverage engine and diagram extractor.

    Collaborators are built from ``.sysmlcheck.yml`` per run unless injected,
    which keeps the CLI and service thin and lets tests stub the grammar tool.
    """

    def __init__(
        self,
        grammar_runner: Runner | None = None,
        scanner: SourceScanner | None = None,
        passes: Optional[Sequence[DiagramPass]] = None,
    ) -> None:
        self._grammar_runner = grammar_runner
        self._scanner = scanner
        self._passes = list(passes) if passes is not None else None
        self.logger = get_logger("orchestrator")

    def run_validate(self, path: Union[str, Path]) -> ValidationResult:
        """Run every structural check over the repository at ``path``."""
        repo_path = self._resolve_repo(path)
        config = load_config(repo_path)
        self.logger.info("Validating model corpus in %s", config.model_root)
        validator = StructuralValidator(
            model_dir=config.model_dir,
            grammar=self._grammar(config),
        )
        return validator.validate(repo_path)

    def run_cycle_coverage(self, path: Union[str, Path], cycle: Union[int, str]) -> CoverageResult:
        repo_path = self._resolve_repo(path)
        config = load_config(repo_path)
        manifest = load_manifest(config.model_root)
        if manifest is None:
            self.logger.warning("No manifest under %s; cycle coverage is vacuous", config.model_root)
        corpus = scan_corpus(config.model_root) if config.model_root.is_dir() else []
        return check_cycle_coverage(repo_path, manifest, cycle, corpus)

    def run_manifest_check(
        self,
        path: Union[str, Path],
        threshold: Optional[Union[int, float]] = None,
    ) -> ManifestGateResult:
        """Apply the manifest acceptance gate; ``threshold`` overrides the configured one."""
        repo_path = self._resolve_repo(path)
        config = load_config(repo_path)
        manifest = self._require_manifest(config)
        limit = config.coverage.min_manifest_coverage if threshold is None else threshold
        return accept_manifest(manifest, repo_path, threshold=limit, scanner=self._source_scanner(config))

    def run_diagrams(
        self,
        path: Union[str, Path],
        *,
        output_dir: Optional[Path] = None,
        corpus_file: Optional[Path] = None,
        write: bool = True,
    ) -> DiagramRun:
        """Extract diagrams from the model tree, or from a concatenated corpus file."""
        repo_path = self._resolve_repo(path)
        config = load_config(repo_path)
        files = self._load_corpus(config, corpus_file)
        passes = self._passes if self._passes is not None else build_passes(config.diagrams.enabled)

        run = DiagramRun(diagrams=extract_diagrams(files, passes))
        self.logger.info("Extracted %d diagram(s) from %d model files", len(run.diagrams), len(files))
        if write and run.diagrams:
            run.output_dir = output_dir or config.diagram_output_dir
            run.written = write_diagrams(run.diagrams, run.output_dir)
        return run

    @staticmethod
    def _resolve_repo(path: Union[str, Path]) -> Path:
        repo_path = Path(path).expanduser().resolve()
        if not repo_path.exists():
            raise FileNotFoundError(f"Repository path not found: {path}")
        if not repo_path.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {path}")
        return repo_path

    def _grammar(self, config: SysmlCheckConfig) -> Optional[GrammarValidator]:
        if not config.grammar.enabled:
            self.logger.debug("Grammar validation disabled by configuration")
            return None
        include_paths = [config.root / include for include in config.grammar.include_paths]
        return GrammarValidator(
            command=config.grammar.command,
            include_paths=include_paths,
            library_path=config.grammar.library_path,
            runner=self._grammar_runner,
        )

    def _source_scanner(self, config: SysmlCheckConfig) -> SourceScanner:
        if self._scanner is not None:
            return self._scanner
        return SourceScanner(
            extensions=config.coverage.source_extensions,
            exclude_paths=config.coverage.exclude_paths,
        )

    @staticmethod
    def _require_manifest(config: SysmlCheckConfig) -> Manifest:
        manifest = load_manifest(config.model_root)
        if manifest is None:
            raise FileNotFoundError(
                f"Manifest not found at {manifest_path(config.model_root).relative_to(config.root)}"
            )
        return manifest

    def _load_corpus(self, config: SysmlCheckConfig, corpus_file: Optional[Path]) -> List[ModelFile]:
        if corpus_file is not None:
            try:
                text = corpus_file.read_text(encoding="utf-8")
            except OSError as exc:
                raise FileNotFoundError(f"Failed to read corpus file {corpus_file}: {exc}") from exc
            return split_corpus(text)
        if not config.model_root.is_dir():
            raise FileNotFoundError(f"No {config.model_dir} directory found")
        return scan_corpus(config.model_root)


__all__ = ["Auditor", "DiagramRun"]
