"""Pytest configuration and fixtures."""
import textwrap
from pathlib import Path

import pytest

from mageaudit.indexer.core import ClassifiedFiles, FileCategory, SourceFile
from mageaudit.symbols.index import SymbolIndex

MODULE = "app/code/Vendor/Module"


def dedent(text):
    return textwrap.dedent(text).lstrip("\n")


@pytest.fixture
def write_file():
    """Write a file below a root, creating parent directories."""
    def _write(root: Path, relative: str, text: str) -> Path:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dedent(text), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def memory_file():
    """In-memory SourceFile under a fake /shop installation root."""
    def _make(relative: str, text: str) -> SourceFile:
        return SourceFile.in_memory(f"/shop/{relative}", dedent(text))
    return _make


@pytest.fixture
def run_processor():
    """Run one processor over in-memory files and return it with its findings."""
    def _run(processor_class, *sources, config=None):
        files = ClassifiedFiles.from_files(sources)
        index = SymbolIndex.build(files[FileCategory.SOURCE], max_workers=2)
        processor = processor_class(config)
        processor.process(files, index)
        return processor
    return _run


@pytest.fixture
def sample_project(tmp_path, write_file):
    """Minimal Magento installation with one module of each file kind."""
    write_file(tmp_path, f"{MODULE}/etc/module.xml", """
        <?xml version="1.0"?>
        <config>
            <module name="Vendor_Module"/>
        </config>
    """)
    write_file(tmp_path, f"{MODULE}/etc/di.xml", """
        <?xml version="1.0"?>
        <config xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
            <preference for="Vendor\\Module\\Api\\ItemRepositoryInterface" type="Vendor\\Module\\Model\\ItemRepository"/>
        </config>
    """)
    write_file(tmp_path, f"{MODULE}/Model/Item.php", """
        <?php
        namespace Vendor\\Module\\Model;

        class Item
        {
        }
    """)
    write_file(tmp_path, f"{MODULE}/view/frontend/templates/item.phtml", """
        <p><?= $block->escapeHtml($block->getName()) ?></p>
    """)
    write_file(tmp_path, f"{MODULE}/view/frontend/layout/default.xml", """
        <?xml version="1.0"?>
        <page>
            <body/>
        </page>
    """)
    write_file(tmp_path, "app/etc/config.php", """
        <?php
        return [
            'modules' => [
                'Vendor_Module' => 1,
            ],
        ];
    """)
    write_file(tmp_path, "README.md", "not scanned\n")
    return tmp_path
