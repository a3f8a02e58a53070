#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Template store for the image compare OCR.

One database is one directory holding a bitmap file per template
(file name = template id) and a shared descriptor document mapping each
id to its text, italic flag and ligature span. The descriptor is kept in
memory as an ordered id -> attributes index and written back wholesale
(atomically) whenever a template is learnt.
"""

import os
import uuid
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

import numpy as np

from config import (
    BITMAP_EXTENSION,
    DEFAULT_DATABASE_NAME,
    DESCRIPTOR_ENTRY_TAG,
    DESCRIPTOR_FILE_NAME,
    DESCRIPTOR_ROOT_TAG,
)
from utils.core.logging import get_logger
from utils.core.paths import get_databases_dir
from .imaging import load_bitmap, save_bitmap
from .models import Template

log = get_logger()


def _parse_expand(value: Optional[str]) -> int:
    """Ligature span from the Expand attribute; anything unparseable means 0"""
    if value is None:
        return 0
    try:
        span = int(value.strip())
    except ValueError:
        log.debug(f"Ignoring unparseable Expand value: {value!r}")
        return 0
    return span if span > 0 else 0


def list_databases(root_dir: Union[str, Path, None] = None) -> List[str]:
    """
    List the names of all databases below root_dir.

    Creates the root and a default database when none exists yet.
    """
    root = Path(root_dir) if root_dir is not None else get_databases_dir()
    root.mkdir(parents=True, exist_ok=True)
    names = sorted(p.name for p in root.iterdir() if p.is_dir())
    if not names:
        (root / DEFAULT_DATABASE_NAME).mkdir(parents=True, exist_ok=True)
        names = [DEFAULT_DATABASE_NAME]
    return names


class TemplateManager:
    """Manages one named database of glyph templates."""

    def __init__(self, name: str = DEFAULT_DATABASE_NAME,
                 root_dir: Union[str, Path, None] = None):
        """
        Initialize the template manager and load the database.

        Args:
            name: Database name (= directory name below root_dir)
            root_dir: Directory holding all databases (default: user data dir)
        """
        self.root_dir = Path(root_dir) if root_dir is not None else get_databases_dir()
        self.name = name
        self.templates: List[Template] = []
        self.loaded = False
        self._by_id: Dict[str, Template] = {}
        self._descriptors: Dict[str, Dict[str, str]] = {}

        self.load(name)

    @property
    def directory(self) -> Path:
        return self.root_dir / self.name

    @property
    def descriptor_path(self) -> Path:
        return self.directory / DESCRIPTOR_FILE_NAME

    def __len__(self) -> int:
        return len(self.templates)

    def __iter__(self) -> Iterator[Template]:
        return iter(self.templates)

    def load(self, name: Optional[str] = None) -> "TemplateManager":
        """
        (Re)load the database from disk.

        Bitmaps without a descriptor entry are deleted, entries without a
        bitmap are ignored. I/O problems are logged and leave the database
        emptier than expected; they never raise.

        Args:
            name: Optional database name to switch to

        Returns:
            self, for chaining
        """
        if name is not None:
            self.name = name
        self.templates = []
        self._by_id = {}
        self._descriptors = {}
        self.loaded = False

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.error(f"Unable to create database folder {self.directory}: {e}")
            return self

        prune_orphans = True
        try:
            self._descriptors = self._read_descriptors()
        except (OSError, ET.ParseError) as e:
            # Pruning against an unreadable index would wipe the whole database
            log.error(f"Unreadable descriptor {self.descriptor_path}: {e} - starting empty, orphans kept")
            prune_orphans = False

        try:
            bitmap_files = sorted(self.directory.glob(f"*{BITMAP_EXTENSION}"))
        except OSError as e:
            log.error(f"Unable to list database folder {self.directory}: {e}")
            bitmap_files = []

        orphans = 0
        for bitmap_file in bitmap_files:
            template_id = bitmap_file.stem
            attributes = self._descriptors.get(template_id)
            if attributes is None:
                if prune_orphans:
                    self._discard(bitmap_file)
                    orphans += 1
                continue

            if "Text" not in attributes:
                log.warning(f"Descriptor entry {template_id} has no Text - skipped")
                continue

            try:
                bitmap = load_bitmap(bitmap_file)
            except OSError as e:
                log.warning(f"Failed to load template bitmap {bitmap_file.name}: {e}")
                continue

            self._append(Template(
                id=template_id,
                bitmap=bitmap,
                text=attributes["Text"],
                italic="Italic" in attributes,
                ligature_span=_parse_expand(attributes.get("Expand")),
            ))

        self.loaded = True
        log.info(f"Loaded {len(self.templates)} templates from database '{self.name}'")
        if orphans:
            log.debug(f"Pruned {orphans} orphan bitmaps from '{self.name}'")
        return self

    def switch(self, name: str) -> "TemplateManager":
        """Load another database by name"""
        if name != self.name or not self.loaded:
            log.info(f"Switching image compare database: '{self.name}' -> '{name}'")
        return self.load(name)

    def add(self, bitmap: np.ndarray, text: str, italic: bool = False,
            ligature_span: int = 0) -> str:
        """
        Learn a new template.

        The bitmap is written first and the descriptor document is then
        replaced atomically, so a later load never sees a half-written
        entry (a bitmap without entry is just pruned as an orphan).

        Args:
            bitmap: Glyph bitmap
            text: Recognized text for the glyph
            italic: Italic flag
            ligature_span: Number of slots the template covers (0 = one plain slot)

        Returns:
            The new template id

        Raises:
            ValueError: on empty text or negative span
            OSError: if the bitmap or the descriptor cannot be written
        """
        if not text:
            raise ValueError("Template text must not be empty")
        if ligature_span < 0:
            raise ValueError(f"Ligature span must be >= 0, got {ligature_span}")

        bitmap = np.ascontiguousarray(bitmap, dtype=np.uint8).copy()
        template_id = str(uuid.uuid4())
        bitmap_path = self.directory / f"{template_id}{BITMAP_EXTENSION}"

        attributes = {"Text": text}
        if ligature_span > 0:
            attributes["Expand"] = str(ligature_span)
        if italic:
            attributes["Italic"] = "true"

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            save_bitmap(bitmap_path, bitmap)
            self._descriptors[template_id] = attributes
            self._write_descriptors()
        except OSError as e:
            self._descriptors.pop(template_id, None)
            self._discard(bitmap_path)
            log.error(f"Failed to save template '{text}' to database '{self.name}': {e}")
            raise

        self._append(Template(template_id, bitmap, text, italic, ligature_span))
        log.debug(f"Added template '{text}' ({template_id}, italic={italic}, span={ligature_span})")
        return template_id

    def lookup(self, template_id: str) -> Template:
        """
        Resolve a template by id.

        Raises:
            KeyError: for unknown ids
        """
        return self._by_id[template_id]

    def get_statistics(self) -> Dict:
        """
        Get statistics about the loaded database.

        Returns:
            Dictionary with template statistics
        """
        return {
            'name': self.name,
            'total_templates': len(self.templates),
            'ligature_templates': sum(1 for t in self.templates if t.ligature_span > 0),
            'italic_templates': sum(1 for t in self.templates if t.italic),
            'distinct_texts': len({t.text for t in self.templates}),
            'directory': str(self.directory),
            'loaded': self.loaded,
        }

    def _append(self, template: Template):
        self.templates.append(template)
        self._by_id[template.id] = template

    def _read_descriptors(self) -> Dict[str, Dict[str, str]]:
        if not self.descriptor_path.exists():
            return {}
        root = ET.parse(self.descriptor_path).getroot()
        descriptors: Dict[str, Dict[str, str]] = {}
        for element in root.iter(DESCRIPTOR_ENTRY_TAG):
            template_id = (element.text or "").strip()
            if template_id and template_id not in descriptors:
                descriptors[template_id] = dict(element.attrib)
        return descriptors

    def _write_descriptors(self):
        root = ET.Element(DESCRIPTOR_ROOT_TAG)
        for template_id, attributes in self._descriptors.items():
            element = ET.SubElement(root, DESCRIPTOR_ENTRY_TAG, attributes)
            element.text = template_id

        tmp_path = self.descriptor_path.with_name(self.descriptor_path.name + ".tmp")
        try:
            ET.ElementTree(root).write(tmp_path, encoding="utf-8", xml_declaration=True)
            os.replace(tmp_path, self.descriptor_path)
        except OSError:
            self._discard(tmp_path)
            raise

    @staticmethod
    def _discard(path: Path):
        """Best-effort delete"""
        try:
            path.unlink()
        except OSError as e:
            log.debug(f"Could not delete {path.name}: {e}")
