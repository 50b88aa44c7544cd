"""Materialises a manifest's file mappings into an output tree.

Template sources live under ``<ritual>/templates/`` and static sources under
``<ritual>/static/``.  A ``_shared:`` prefix redirects either kind to the
``_shared/`` directory beside the rituals, so several rituals can reuse one
canonical file.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable

from ritual_grove.config import GeneratorConfig
from ritual_grove.errors import ConfigurationError, GenerationError, RenderError, SourceNotFoundError
from ritual_grove.generator.template import TemplateRenderer
from ritual_grove.generator.variables import Variables
from ritual_grove.manifest import FileMapping, Manifest
from ritual_grove.questionnaire.condition import ConditionEvaluator

logger = logging.getLogger(__name__)

SHARED_PREFIX = "_shared:"
SHARED_DIR = "_shared"

_TRUE_RESULTS = {"true", "1", "yes"}
_FALSE_RESULTS = {"false", "0", "no", ""}


class FileGenerator:
    """Generates files from templates and static sources.

    Args:
        variables: The variable store templates are rendered against.
        config: Delimiters, template suffix, permissions and shared root.
        renderer: Optional pre-built renderer (built from *config* otherwise).
    """

    def __init__(
        self,
        variables: Variables | None = None,
        config: GeneratorConfig | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config or GeneratorConfig()
        self.variables = variables or Variables()
        self.renderer = renderer or TemplateRenderer(
            self.config.left_delimiter,
            self.config.right_delimiter,
            self.config.block_start,
            self.config.block_end,
        )
        self.evaluator = ConditionEvaluator()
        self.protected: set[str] = set()
        self.written: list[Path] = []

    def set_protected_files(self, names: Iterable[str]) -> None:
        self.protected = {_normalise(name) for name in names}

    # -- Public API -------------------------------------------------------------

    def generate_files(self, manifest: Manifest, ritual_path: str | Path, output_path: str | Path) -> list[Path]:
        """Generate every template and static mapping of *manifest*.

        Returns:
            The destination paths actually written, in order.

        Raises:
            ConfigurationError: If a mapping condition is malformed.
            SourceNotFoundError: If a non-optional source is missing.
            RenderError: If a template or destination path fails to render.
            GenerationError: If a destination cannot be written.
        """
        ritual_root = Path(ritual_path)
        output_root = Path(output_path)
        self.written = []
        self.set_protected_files(manifest.files.protected)
        self.create_directory_structure(output_root, manifest.files.directories)

        for mapping in manifest.files.templates:
            self._generate_mapping(mapping, ritual_root, output_root, is_template=True)
        for mapping in manifest.files.static:
            self._generate_mapping(mapping, ritual_root, output_root, is_template=False)

        logger.info("Generated %d file(s) into %s", len(self.written), output_root)
        return list(self.written)

    def generate_file(
        self,
        source: str | Path,
        destination: str | Path,
        is_template: bool,
        output_root: str | Path | None = None,
    ) -> bool:
        """Render or copy one file.

        Returns:
            ``False`` if the destination is protected and already exists.
        """
        src = Path(source)
        dest = Path(destination)

        if self.is_protected(dest, output_root) and dest.exists():
            logger.info("Preserving protected file %s", dest)
            return False

        try:
            dest.parent.mkdir(parents=True, exist_ok=True, mode=self.config.directory_mode)
        except OSError as exc:
            raise GenerationError(dest.parent, f"failed to create directory {dest.parent}: {exc}") from exc

        if is_template:
            try:
                content = src.read_text(encoding="utf-8")
            except OSError as exc:
                raise GenerationError(src, f"failed to read template {src}: {exc}") from exc
            rendered = self.renderer.render(content, self.variables.all(), name=str(src))
            _write_restricted(dest, rendered, self.config.template_file_mode)
        else:
            try:
                shutil.copyfile(src, dest)
                shutil.copymode(src, dest)
            except OSError as exc:
                raise GenerationError(dest, f"failed to copy {src} to {dest}: {exc}") from exc

        self.written.append(dest)
        return True

    def create_directory_structure(self, base_path: str | Path, directories: Iterable[str]) -> None:
        base = Path(base_path)
        for directory in directories:
            target = base / self.renderer.render(directory, self.variables.all(), name=directory)
            try:
                target.mkdir(parents=True, exist_ok=True, mode=self.config.directory_mode)
            except OSError as exc:
                raise GenerationError(target, f"failed to create directory {target}: {exc}") from exc

    # -- Resolution ---------------------------------------------------------------

    def resolve_source(self, source: str, ritual_path: str | Path, *, is_template: bool) -> Path:
        """Resolve a mapping source to a filesystem path."""
        ritual_root = Path(ritual_path)
        if source.startswith(SHARED_PREFIX):
            shared = source[len(SHARED_PREFIX):].lstrip("/")
            base = self.config.rituals_base_path or ritual_root.parent
            return Path(base) / SHARED_DIR / shared
        return ritual_root / ("templates" if is_template else "static") / source

    def is_protected(self, destination: str | Path, output_root: str | Path | None = None) -> bool:
        """Match *destination* against the protected set by relative path or basename."""
        if not self.protected:
            return False
        dest = Path(destination)
        candidates = {_normalise(str(dest)), dest.name}
        if output_root is not None:
            try:
                candidates.add(_normalise(str(dest.relative_to(output_root))))
            except ValueError:
                pass
        return bool(candidates & self.protected)

    def should_generate(self, condition: str) -> bool:
        """Evaluate a file-mapping condition against the current variables.

        Conditions containing template delimiters are rendered and the output
        coerced to a boolean; anything else uses the expression grammar.

        Raises:
            ConfigurationError: If the condition cannot be parsed or rendered.
        """
        condition = condition.strip()
        if not condition:
            return True

        variables = self.variables.all()
        if not self.renderer.has_markup(condition):
            return self.evaluator.evaluate_expression(condition, variables)

        try:
            result = self.renderer.render_condition(condition, variables).strip().lower()
        except RenderError as exc:
            raise ConfigurationError(f"invalid file condition {condition!r}: {exc}") from exc
        if result in _TRUE_RESULTS:
            return True
        if result in _FALSE_RESULTS:
            return False
        return True

    # -- Internals ----------------------------------------------------------------

    def _generate_mapping(
        self,
        mapping: FileMapping,
        ritual_root: Path,
        output_root: Path,
        *,
        is_template: bool,
    ) -> None:
        kind = "template" if is_template else "static"
        if mapping.condition and not self.should_generate(mapping.condition):
            logger.debug("Skipping %s %s: condition not met", kind, mapping.source)
            return

        source = self.resolve_source(mapping.source, ritual_root, is_template=is_template)
        rendered_dest = self.renderer.render(mapping.destination, self.variables.all(), name=mapping.destination)
        destination = output_root / rendered_dest

        if not source.exists():
            if mapping.optional:
                logger.debug("Skipping optional %s %s: source missing", kind, source)
                return
            raise SourceNotFoundError(kind, source)

        if source.is_dir():
            self._generate_directory(source, destination, is_template, output_root)
        else:
            self.generate_file(source, destination, is_template, output_root)

    def _generate_directory(self, source_dir: Path, dest_dir: Path, is_template: bool, output_root: Path) -> None:
        suffix = self.config.template_suffix
        for path in sorted(source_dir.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(source_dir)
            destination = dest_dir / relative
            if is_template and suffix and destination.name.endswith(suffix):
                destination = destination.with_name(destination.name[: -len(suffix)])
            self.generate_file(path, destination, is_template, output_root)


def _normalise(path: str) -> str:
    return path.replace(os.sep, "/").strip("/")


def _write_restricted(path: Path, content: str, mode: int) -> None:
    """Write *content* so that only the owner can read it."""
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.chmod(path, mode)
    except OSError as exc:
        raise GenerationError(path, f"failed to write file {path}: {exc}") from exc
