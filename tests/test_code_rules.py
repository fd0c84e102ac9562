"""Tests for source-code rules: injections, ObjectManager, SQL, helpers and blocks."""

from mageaudit.rules.base import Severity
from mageaudit.rules.code.block_ratio import BlockViewModelRatio
from mageaudit.rules.code.helpers import Helpers, helper_calls
from mageaudit.rules.code.object_manager import UseOfObjectManager, derive_property_name
from mageaudit.rules.code.payment_method import PaymentInterfaceUseAudit
from mageaudit.rules.code.raw_sql import HardWrittenSQL, truncate_sql
from mageaudit.rules.code.registry_usage import UseOfRegistry
from mageaudit.rules.code.specific_injection import SpecificClassInjection

MODULE = "app/code/Vendor/Module"

SERVICE = r"""
    <?php
    namespace Vendor\Module\Model;

    use Vendor\Module\Model\ResourceModel\Item\Collection;
    use Vendor\Module\Model\ItemRepository;
    use Vendor\Module\Model\ResourceModel\Item as ItemResource;
    use Vendor\Module\Model\Calculator;
    use Vendor\Module\Model\Item;
    use Magento\Framework\App\Config\ScopeConfigInterface;
    use GuzzleHttp\Client;

    class Service
    {
        public function __construct(
            Collection $collection,
            ItemRepository $itemRepository,
            ItemResource $itemResource,
            Calculator $calculator,
            Item $item,
            ScopeConfigInterface $scopeConfig,
            Client $client
        ) {
            $this->collection = $collection;
        }
    }
"""

ITEM = r"""
    <?php
    namespace Vendor\Module\Model;

    use Vendor\Module\Api\Data\ItemInterface;

    class Item extends \Magento\Framework\Model\AbstractModel implements ItemInterface
    {
    }
"""

COLLECTION = r"""
    <?php
    namespace Vendor\Module\Model\ResourceModel\Item;

    class Collection extends \Magento\Framework\Model\ResourceModel\Db\Collection\AbstractCollection
    {
    }
"""

FILTERED = r"""
    <?php
    namespace Vendor\Module\Model\ResourceModel\Item;

    class Filtered extends Collection
    {
    }
"""


class TestSpecificClassInjection:
    """Concrete classes in constructor signatures."""

    def _run(self, memory_file, run_processor, *extra):
        return run_processor(
            SpecificClassInjection, memory_file(f"{MODULE}/Model/Service.php", SERVICE), *extra,
        )

    def test_each_kind_of_injection(self, memory_file, run_processor):
        processor = self._run(memory_file, run_processor, memory_file(f"{MODULE}/Model/Item.php", ITEM))

        collection = processor.findings_for("collectionMustUseFactory")
        assert len(collection) == 1
        assert collection[0].severity is Severity.ERROR
        assert collection[0].line == 15
        assert 'Inject "Vendor\\Module\\Model\\ResourceModel\\Item\\CollectionFactory"' in collection[0].message

        repository = processor.findings_for("repositoryMustUseInterface")
        assert dict(repository[0].metadata)["repositories"] == {
            "Vendor\\Module\\Model\\ItemRepository": {"interface": "Vendor\\Module\\Api\\ItemRepositoryInterface"},
        }

        resource = processor.findings_for("noResourceModelInjection")
        assert [f.line for f in resource] == [17]

        model = processor.findings_for("modelUseApiInterface")
        assert dict(model[0].metadata)["models"] == {
            "Vendor\\Module\\Model\\Item": {"interface": "Vendor\\Module\\Api\\Data\\ItemInterface"},
        }

        generic = processor.findings_for("specificClassInjection")
        assert [dict(f.metadata)["specificClasses"] for f in generic] == [
            {"Vendor\\Module\\Model\\Calculator": "$calculator"},
        ]

    def test_collection_with_children(self, memory_file, run_processor):
        processor = self._run(
            memory_file, run_processor,
            memory_file(f"{MODULE}/Model/ResourceModel/Item/Collection.php", COLLECTION),
            memory_file(f"{MODULE}/Model/ResourceModel/Item/Filtered.php", FILTERED),
        )
        assert processor.findings_for("collectionMustUseFactory") == []
        findings = processor.findings_for("collectionWithChildrenMustUseFactory")
        assert len(findings) == 1
        assert findings[0].severity is Severity.WARNING
        assert list(findings[0].metadata["children"]) == ["Vendor\\Module\\Model\\ResourceModel\\Item\\Filtered"]

    def test_core_collection_extended_in_project(self, memory_file, run_processor):
        child = memory_file(f"{MODULE}/Model/ResourceModel/Order/Collection.php", r"""
            <?php
            namespace Vendor\Module\Model\ResourceModel\Order;

            class Collection extends \Magento\Sales\Model\ResourceModel\Order\Collection
            {
            }
        """)
        injector = memory_file(f"{MODULE}/Model/Orders.php", r"""
            <?php
            namespace Vendor\Module\Model;

            use Magento\Sales\Model\ResourceModel\Order\Collection;

            class Orders
            {
                public function __construct(Collection $orders)
                {
                    $this->orders = $orders;
                }
            }
        """)
        processor = run_processor(SpecificClassInjection, child, injector)
        assert processor.findings_for("collectionMustUseFactory") == []
        findings = processor.findings_for("collectionWithChildrenMustUseFactory")
        assert [list(f.metadata["children"]) for f in findings] == [
            ["Vendor\\Module\\Model\\ResourceModel\\Order\\Collection"],
        ]

    def test_parent_forwarded_parameters_are_skipped(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Block/Items.php", r"""
            <?php
            namespace Vendor\Module\Block;

            use Vendor\Module\Model\Calculator;

            class Items extends \Magento\Framework\View\Element\Template
            {
                public function __construct(Calculator $calculator)
                {
                    parent::__construct($calculator);
                }
            }
        """)
        assert run_processor(SpecificClassInjection, source).found_count == 0

    def test_factories_are_skipped(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/ThingFactory.php", r"""
            <?php
            namespace Vendor\Module\Model;

            class ThingFactory
            {
                public function __construct(Calculator $calculator)
                {
                    $this->calculator = $calculator;
                }
            }
        """)
        assert run_processor(SpecificClassInjection, source).found_count == 0


class TestUseOfRegistry:
    """The deprecated registry in constructors."""

    def test_registry_parameter(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Loader.php", r"""
            <?php
            namespace Vendor\Module\Model;

            use Magento\Framework\Registry;

            class Loader
            {
                public function __construct(Registry $coreRegistry)
                {
                    $this->coreRegistry = $coreRegistry;
                }
            }
        """)
        findings = run_processor(UseOfRegistry, source).findings_for("magento.code.use-of-registry")
        assert len(findings) == 1
        assert findings[0].line == 8
        assert findings[0].severity is Severity.ERROR
        assert '"Vendor\\Module\\Model\\Loader"' in findings[0].message

    def test_similarly_named_class_is_fine(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Loader.php", r"""
            <?php
            namespace Vendor\Module\Model;

            class Loader
            {
                public function __construct(Registry $registry)
                {
                    $this->registry = $registry;
                }
            }
        """)
        assert run_processor(UseOfRegistry, source).found_count == 0


class TestUseOfObjectManager:
    """Direct ObjectManager access."""

    def test_static_instance(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Loader.php", r"""
            <?php
            namespace Vendor\Module\Model;

            use Magento\Framework\App\ObjectManager;

            class Loader
            {
                public function load()
                {
                    return ObjectManager::getInstance()->get(\Vendor\Module\Model\Thing::class);
                }
            }
        """)
        processor = run_processor(UseOfObjectManager, source)
        findings = processor.findings_for("replaceObjectManager")
        assert [f.line for f in findings] == [10]
        assert dict(findings[0].metadata)["injections"] == {"Vendor\\Module\\Model\\Thing": "thing"}
        assert processor.findings_for("magento.code.useless-object-manager-import") == []

    def test_injected_object_manager(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Loader.php", r"""
            <?php
            namespace Vendor\Module\Model;

            use Magento\Framework\ObjectManagerInterface;

            class Loader
            {
                public function __construct(ObjectManagerInterface $objectManager)
                {
                    $this->objectManager = $objectManager;
                }

                public function load()
                {
                    $first = $this->objectManager->create('Vendor\Module\Model\FirstThing');
                    return $this->objectManager->get(SecondThing::class);
                }
            }
        """)
        findings = run_processor(UseOfObjectManager, source).findings_for("replaceObjectManager")
        assert [dict(f.metadata)["injections"] for f in findings] == [
            {"Vendor\\Module\\Model\\FirstThing": "firstThing"},
            {"SecondThing": "secondThing"},
        ]

    def test_unused_import(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Loader.php", r"""
            <?php
            namespace Vendor\Module\Model;

            use Magento\Framework\App\ObjectManager;

            class Loader
            {
            }
        """)
        processor = run_processor(UseOfObjectManager, source)
        findings = processor.findings_for("magento.code.useless-object-manager-import")
        assert [(f.line, f.severity) for f in findings] == [(4, Severity.WARNING)]

    def test_factories_may_use_it(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/ThingFactory.php", r"""
            <?php
            namespace Vendor\Module\Model;

            class ThingFactory
            {
                public function create()
                {
                    return \Magento\Framework\App\ObjectManager::getInstance()->create(Thing::class);
                }
            }
        """)
        assert run_processor(UseOfObjectManager, source).found_count == 0

    def test_property_name(self):
        assert derive_property_name("Vendor\\Module\\Model\\FooBar") == "fooBar"


class TestHardWrittenSQL:
    """Raw SQL outside setup scripts."""

    QUERY = """
        <?php
        class Report
        {
            public function rows($connection)
            {
                // SELECT id FROM ignored_in_comment
                $sql = "SELECT entity_id, sku
                    FROM catalog_product_entity WHERE sku = 'a'";
                return $connection->fetchAll($sql);
            }
        }
    """

    def test_select_is_reported(self, memory_file, run_processor):
        processor = run_processor(HardWrittenSQL, memory_file(f"{MODULE}/Model/Report.php", self.QUERY))
        findings = processor.findings_for("magento.code.hard-written-sql-select")
        assert len(findings) == 1
        assert findings[0].line == 7
        assert findings[0].end_line == 8
        assert findings[0].severity is Severity.ERROR
        assert 'Hard-written SELECT query detected: "SELECT entity_id, sku FROM"' in findings[0].message
        assert processor.found_count == 1

    def test_setup_scripts_are_skipped(self, memory_file, run_processor):
        processor = run_processor(HardWrittenSQL, memory_file(f"{MODULE}/Setup/Patch/Data/Fill.php", self.QUERY))
        assert processor.found_count == 0

    def test_truncation(self):
        assert truncate_sql("SELECT   a,\n b FROM", 80) == "SELECT a, b FROM"
        assert truncate_sql("x" * 100, 10) == "xxxxxxx..."


class TestPaymentMethod:
    """Payment methods extending the deprecated abstract."""

    def test_extends_abstract_method(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Payment.php", r"""
            <?php
            namespace Vendor\Module\Model;

            use Magento\Payment\Model\Method\AbstractMethod;

            class Payment extends AbstractMethod
            {
            }
        """)
        findings = run_processor(PaymentInterfaceUseAudit, source).findings_for("extensionOfAbstractMethod")
        assert [f.line for f in findings] == [6]

    def test_adapter_is_fine(self, memory_file, run_processor):
        source = memory_file(f"{MODULE}/Model/Payment.php", r"""
            <?php
            namespace Vendor\Module\Model;

            class Payment extends \Magento\Payment\Model\Method\Adapter
            {
            }
        """)
        assert run_processor(PaymentInterfaceUseAudit, source).found_count == 0


class TestBlockViewModelRatio:
    """Modules made mostly of blocks."""

    def _module(self, memory_file, blocks, models):
        files = [
            memory_file(f"app/code/Vendor/Shop/Block/Block{i}.php", "<?php\nclass A {}\n") for i in range(blocks)
        ]
        files += [
            memory_file(f"app/code/Vendor/Shop/Model/Model{i}.php", "<?php\nclass B {}\n") for i in range(models)
        ]
        return files

    def test_high_ratio(self, memory_file, run_processor):
        processor = run_processor(BlockViewModelRatio, *self._module(memory_file, 2, 1))
        findings = processor.findings_for("blockViewModelRatio")
        assert len(findings) == 1
        assert findings[0].file_path == "/shop/app/code/Vendor/Shop"
        assert findings[0].metadata["blockCount"] == 2
        assert findings[0].metadata["totalCount"] == 3
        assert findings[0].metadata["module"] == "Vendor_Shop"

    def test_ratio_at_threshold(self, memory_file, run_processor):
        processor = run_processor(BlockViewModelRatio, *self._module(memory_file, 1, 1))
        assert processor.found_count == 0

    def test_threshold_from_config(self, memory_file, run_processor):
        config = {"rules": {"block_ratio_threshold": 0.2}}
        processor = run_processor(BlockViewModelRatio, *self._module(memory_file, 1, 3), config=config)
        assert processor.found_count == 1


class TestHelpers:
    """Helpers extending AbstractHelper and helpers called from templates."""

    HELPER = r"""
        <?php
        namespace Vendor\Module\Helper;

        use Magento\Framework\App\Helper\AbstractHelper;

        class {name} extends AbstractHelper
        {{
        }}
    """

    def test_helper_used_in_template(self, memory_file, run_processor):
        processor = run_processor(
            Helpers,
            memory_file(f"{MODULE}/Helper/Data.php", self.HELPER.format(name="Data")),
            memory_file(f"{MODULE}/Helper/Unused.php", self.HELPER.format(name="Unused")),
            memory_file(
                f"{MODULE}/view/frontend/templates/list.phtml",
                "<?php $helper = $this->helper('Vendor\\Module\\Helper\\Data'); ?>\n",
            ),
        )
        used = processor.findings_for("helpersInsteadOfViewModels")
        assert len(used) == 1
        assert used[0].severity is Severity.ERROR
        assert list(used[0].metadata["templates"]) == [f"/shop/{MODULE}/view/frontend/templates/list.phtml"]
        assert used[0].line == 6

        unused = processor.findings_for("extensionOfAbstractHelper")
        assert [f.file_path for f in unused] == [f"/shop/{MODULE}/Helper/Unused.php"]
        assert unused[0].severity is Severity.WARNING

    def test_helper_call_forms(self):
        text = (
            "<?php $this->helper('Vendor\\\\Module\\\\Helper\\\\Data'); "
            "$this->helper(\\Vendor\\Module\\Helper\\Price::class); ?>"
        )
        assert helper_calls(text) == ["Vendor\\Module\\Helper\\Data", "Vendor\\Module\\Helper\\Price"]
