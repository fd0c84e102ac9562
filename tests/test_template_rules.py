"""Tests for template, layout, performance and module rules."""

from mageaudit.indexer.core import ClassifiedFiles, SourceFile, classify
from mageaudit.rules.base import Severity
from mageaudit.rules.modules.unused_modules import UnusedModules, parse_module_statuses
from mageaudit.rules.performance.cacheable import Cacheable
from mageaudit.rules.performance.collection_in_loop import CollectionInLoop
from mageaudit.rules.performance.count_on_collection import CountOnCollection
from mageaudit.rules.templates.block_vs_viewmodel import AdvancedBlockVsViewModel, suspicious_block_calls
from mageaudit.rules.templates.escaper import DeprecatedEscaperUsage
from mageaudit.symbols.index import SymbolIndex

MODULE = "app/code/Vendor/Module"
TEMPLATE = f"{MODULE}/view/frontend/templates/items.phtml"


class TestEscaper:
    """Escaping through $block and $this."""

    def test_severity_depends_on_variable(self, memory_file, run_processor):
        template = memory_file(TEMPLATE, """
            <a href="<?= $block->escapeUrl($url) ?>">
                <?= $this->escapeHtml($label) ?>
            </a>
            <?= $escaper->escapeHtml($other) ?>
        """)
        findings = run_processor(DeprecatedEscaperUsage, template).findings_for("useEscaper")
        assert [(f.line, f.severity) for f in findings] == [(1, Severity.WARNING), (2, Severity.ERROR)]
        assert dict(findings[1].metadata) == {"variable": "this", "method": "escapeHtml"}


class TestBlockVsViewModel:
    """$this in templates and data pulled from blocks."""

    def test_this_reported_once_per_file(self, memory_file, run_processor):
        template = memory_file(TEMPLATE, """
            <h1><?= $block->escapeHtml($block->getTitle()) ?></h1>
            <?php if ($this->isEnabled()): ?>
                <?= $this->getProduct()->getName() ?>
            <?php endif ?>
        """)
        findings = run_processor(AdvancedBlockVsViewModel, template).findings_for("thisToBlock")
        assert len(findings) == 1
        assert findings[0].line == 2
        assert "$this->isEnabled(, $this->getProduct(" in findings[0].message

    def test_data_crunch(self, memory_file, run_processor):
        template = memory_file(TEMPLATE, """
            <h1><?= $block->getName() ?></h1>
            <span><?= $block->getPrice() ?></span>
            <?php if ($block->isVisible()): ?><?= $block->getChildHtml('extra') ?><?php endif ?>
        """)
        findings = run_processor(AdvancedBlockVsViewModel, template).findings_for("dataCrunchInPhtml")
        assert [(f.line, f.severity) for f in findings] == [(1, Severity.WARNING)]
        assert "3 data retrieval calls" in findings[0].message

    def test_view_model_templates_are_fine(self, memory_file, run_processor):
        template = memory_file(TEMPLATE, """
            <?php $viewModel = $block->getData('view_model'); ?>
            <h1><?= $block->getName() ?></h1>
            <span><?= $block->getPrice() ?></span>
            <?php if ($block->isVisible()): ?>yes<?php endif ?>
        """)
        assert run_processor(AdvancedBlockVsViewModel, template).found_count == 0

    def test_layout_calls_are_not_suspicious(self):
        text = "$block->getChildHtml('a'); $block->getUrl('b'); $block->getJsLayout(); $block->getSku();"
        assert suspicious_block_calls(text) == ["$block->getSku("]


class TestCountOnCollection:
    """count() on collections in classes and in templates."""

    BLOCK = r"""
        <?php
        namespace Vendor\Module\Block;

        use Vendor\Module\Model\ResourceModel\Item\CollectionFactory;

        class Items extends \Magento\Framework\View\Element\Template
        {
            private $collectionFactory;

            public function __construct(CollectionFactory $collectionFactory)
            {
                $this->collectionFactory = $collectionFactory;
            }

            public function getItems()
            {
                $collection = $this->collectionFactory->create();
                return $collection;
            }

            public function countItems()
            {
                $items = $this->collectionFactory->create();
                return count($items);
            }
        }
    """

    ITEMS_TEMPLATE = r"""
        <?php
        /** @var \Vendor\Module\Block\Items $block */
        $items = $block->getItems();
        ?>
        <p><?= count($items) ?></p>
        <p><?= $block->getItems()->count() ?></p>
        <p><?= $block->getItems()->getSize() ?></p>
    """

    def test_source_and_template_phases(self, memory_file, run_processor):
        processor = run_processor(
            CountOnCollection,
            memory_file(f"{MODULE}/Block/Items.php", self.BLOCK),
            memory_file(TEMPLATE, self.ITEMS_TEMPLATE),
        )
        findings = processor.findings_for("magento.performance.count-on-collection")
        by_file = sorted((f.file_path.rsplit("/", 1)[-1], f.line) for f in findings)
        assert by_file == [("Items.php", 24), ("items.phtml", 5), ("items.phtml", 6)]

    def test_injected_collection(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Stats.php", r"""
            <?php
            namespace Vendor\Module\Model;

            use Vendor\Module\Model\ResourceModel\Item\Collection;

            class Stats
            {
                public function __construct(Collection $items)
                {
                    $this->items = $items;
                }

                public function total()
                {
                    return $this->items->count();
                }
            }
        """)
        findings = run_processor(CountOnCollection, source).findings_for("magento.performance.count-on-collection")
        assert [(f.line, f.metadata["variable"]) for f in findings] == [(15, "$this->items")]

    def test_template_without_known_block(self, memory_file, run_processor):
        processor = run_processor(CountOnCollection, memory_file(TEMPLATE, self.ITEMS_TEMPLATE))
        assert processor.found_count == 0


class TestCollectionInLoop:
    """Loading inside loop bodies."""

    def test_load_in_loop(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Export.php", """
            <?php
            class Export
            {
                public function run(array $ids)
                {
                    $this->doSomething();
                    foreach ($ids as $id) {
                        $product = $this->productRepository->getById($id);
                        // $this->model->load($id);
                    }
                    $first = $this->collection->getFirstItem();
                }
            }
        """)
        findings = run_processor(CollectionInLoop, source).findings_for("magento.performance.collection-in-loop")
        assert [f.line for f in findings] == [8]
        assert findings[0].message.startswith("Repository ->getById() call inside loop")

    def test_nested_loops_report_for_each_body(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Export.php", """
            <?php
            foreach ($groups as $group) {
                while ($row = $group->next()) {
                    $model->load($row['id']);
                }
            }
        """)
        findings = run_processor(CollectionInLoop, source).findings_for("magento.performance.collection-in-loop")
        assert [f.line for f in findings] == [4, 4]


class TestCacheable:
    """Layout blocks opting out of the page cache."""

    def test_uncacheable_block(self, memory_file, run_processor):
        layout = memory_file(f"{MODULE}/view/frontend/layout/catalog_product_view.xml", r"""
            <?xml version="1.0"?>
            <page>
                <body>
                    <referenceContainer name="content">
                        <block class="Vendor\Module\Block\Promo" name="vendor.promo" cacheable="false"/>
                        <block class="Vendor\Module\Block\Info" name="customer.info" cacheable="false"/>
                        <block class="Vendor\Module\Block\Note" name="vendor.note"/>
                    </referenceContainer>
                </body>
            </page>
        """)
        findings = run_processor(Cacheable, layout).findings_for("useCacheable")
        assert [(f.line, f.metadata["block"]) for f in findings] == [(5, "vendor.promo")]
        assert findings[0].severity is Severity.NOTE

    def test_malformed_layout_is_skipped(self, memory_file, run_processor):
        processor = run_processor(Cacheable, memory_file(f"{MODULE}/view/frontend/layout/bad.xml", "<page><body>"))
        assert processor.found_count == 0
        assert len(processor.skipped) == 1
        assert processor.skipped[0].path == f"/shop/{MODULE}/view/frontend/layout/bad.xml"


class TestUnusedModules:
    """Modules disabled in app/etc/config.php."""

    def test_parse_statuses(self):
        text = "<?php\nreturn [\n  'scopes' => ['a_b' => 5],\n  'modules' => [\n    'Vendor_A' => 1,\n    'Vendor_B' => 0,\n  ],\n];\n"
        assert parse_module_statuses(text) == {"Vendor_A": 1, "Vendor_B": 0}

    def test_disabled_module(self, sample_project, write_file):
        write_file(sample_project, "app/code/Vendor/Old/etc/module.xml", """
            <?xml version="1.0"?>
            <config>
                <module name="Vendor_Old"/>
            </config>
        """)
        write_file(sample_project, "app/etc/config.php", """
            <?php
            return [
                'modules' => [
                    'Vendor_Module' => 1,
                    'Vendor_Old' => 0,
                ],
            ];
        """)
        files = classify(sample_project)
        processor = UnusedModules()
        processor.process(files, SymbolIndex.build([]))
        findings = processor.findings_for("unusedModules")
        assert [f.metadata["module"] for f in findings] == ["Vendor_Old"]
        assert findings[0].file_path.endswith("app/code/Vendor/Old/etc/module.xml")

    def test_without_config_php(self, tmp_path, write_file):
        path = write_file(tmp_path, "app/code/Vendor/Old/etc/module.xml", '<config><module name="Vendor_Old"/></config>')
        files = ClassifiedFiles.from_files([SourceFile.in_memory(path, path.read_text())])
        processor = UnusedModules()
        processor.process(files, SymbolIndex.build([]))
        assert processor.found_count == 0
