"""Tests for di.xml scope, preference and proxy rules."""

import pytest

from mageaudit.indexer.core import SourceFile
from mageaudit.rules.common.di_config import DiConfigIndex
from mageaudit.rules.common.di_scope import ADMINHTML, FRONTEND, GLOBAL, detect_class_area, get_scope
from mageaudit.rules.di.area_scope import DiAreaScope
from mageaudit.rules.di.command_proxies import NoProxyInCommands
from mageaudit.rules.di.heavy_proxies import (
    ProxyForHeavyClasses,
    find_heavy_dependencies_without_proxy,
    is_heavy_class,
)
from mageaudit.rules.di.preferences import Preferences
from mageaudit.symbols.index import analyze_file

MODULE = "app/code/Vendor/Module"
XSI = 'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"'

ADMIN_PLUGIN = r"""
    <?xml version="1.0"?>
    <config>
        <type name="Vendor\Module\Controller\Adminhtml\Order\View">
            <plugin name="vendor_order_view" type="Vendor\Module\Plugin\OrderViewPlugin"/>
        </type>
    </config>
"""

CART = r"""
    <?php
    namespace Vendor\Module\Model;

    use Magento\Checkout\Model\Session;

    class Cart
    {
        private $checkoutSession;

        public function __construct(
            Session $checkoutSession
        ) {
            $this->checkoutSession = $checkoutSession;
        }
    }
"""

CART_PROXY = f"""
    <?xml version="1.0"?>
    <config {XSI}>
        <type name="Vendor\\Module\\Model\\Cart">
            <arguments>
                <argument name="checkoutSession" xsi:type="object">Magento\\Checkout\\Model\\Session\\Proxy</argument>
            </arguments>
        </type>
    </config>
"""

EMPTY_DI = """
    <?xml version="1.0"?>
    <config/>
"""


class TestScopes:
    """Area detection for files and classes."""

    @pytest.mark.parametrize("path,expected", [
        (f"/shop/{MODULE}/etc/di.xml", GLOBAL),
        (f"/shop/{MODULE}/etc/frontend/di.xml", FRONTEND),
        (f"/shop/{MODULE}/etc/adminhtml/di.xml", ADMINHTML),
        (f"/shop/{MODULE}/etc/webapi_rest/di.xml", "webapi_rest"),
    ])
    def test_file_scope(self, path, expected):
        assert get_scope(path) == expected

    @pytest.mark.parametrize("class_name,expected", [
        ("Vendor\\Module\\Controller\\Adminhtml\\Order\\View", ADMINHTML),
        ("Vendor\\Module\\Block\\Adminhtml\\Grid", ADMINHTML),
        ("Vendor\\Module\\Block\\Product\\View", FRONTEND),
        ("Vendor\\Module\\ViewModel\\Price", FRONTEND),
        ("Vendor\\Module\\Model\\Cart", None),
    ])
    def test_class_area(self, class_name, expected):
        assert detect_class_area(class_name) == expected


class TestAreaScope:
    """Area-specific plugins and preferences declared globally."""

    def test_global_plugin_on_admin_class(self, memory_file, run_processor):
        processor = run_processor(DiAreaScope, memory_file(f"{MODULE}/etc/di.xml", ADMIN_PLUGIN))
        findings = processor.findings_for("magento.di.global-area-scope")
        assert len(findings) == 1
        assert findings[0].line == 3
        assert "etc/adminhtml/di.xml" in findings[0].message
        assert findings[0].metadata["area"] == ADMINHTML

    def test_scoped_plugin_is_fine(self, memory_file, run_processor):
        processor = run_processor(DiAreaScope, memory_file(f"{MODULE}/etc/adminhtml/di.xml", ADMIN_PLUGIN))
        assert processor.found_count == 0

    def test_global_preference_for_frontend_class(self, memory_file, run_processor):
        di = memory_file(f"{MODULE}/etc/di.xml", r"""
            <?xml version="1.0"?>
            <config>
                <preference for="Magento\Catalog\Block\Product\ListProduct" type="Vendor\Module\Block\ListProduct"/>
                <preference for="Magento\Catalog\Api\ProductRepositoryInterface" type="Vendor\Module\Model\Repo"/>
            </config>
        """)
        findings = run_processor(DiAreaScope, di).findings_for("magento.di.global-area-scope")
        assert [f.metadata["area"] for f in findings] == [FRONTEND]


class TestPreferences:
    """Several preferences for one interface in one scope."""

    def _preference(self, memory_file, module, target, area=""):
        path = f"app/code/Vendor/{module}/etc/{area + '/' if area else ''}di.xml"
        return memory_file(path, f"""
            <?xml version="1.0"?>
            <config>
                <preference for="Vendor\\Api\\FooInterface" type="{target}"/>
            </config>
        """)

    def test_duplicates_in_same_scope(self, memory_file, run_processor):
        processor = run_processor(
            Preferences,
            self._preference(memory_file, "One", "Vendor\\One\\Foo"),
            self._preference(memory_file, "Two", "Vendor\\Two\\Foo"),
        )
        findings = processor.findings_for("duplicatePreferences")
        assert len(findings) == 2
        assert all("Total preferences: 2" in f.message for f in findings)
        assert {f.file_path for f in findings} == {
            "/shop/app/code/Vendor/One/etc/di.xml",
            "/shop/app/code/Vendor/Two/etc/di.xml",
        }

    def test_different_scopes_do_not_clash(self, memory_file, run_processor):
        processor = run_processor(
            Preferences,
            self._preference(memory_file, "One", "Vendor\\One\\Foo"),
            self._preference(memory_file, "Two", "Vendor\\Two\\Foo", area="frontend"),
        )
        assert processor.found_count == 0


class TestHeavyDependencies:
    """The two-input correlation between constructors and di.xml."""

    def _cart(self, memory_file, text=CART):
        return analyze_file(memory_file(f"{MODULE}/Model/Cart.php", text))

    def test_heavy_class_detection(self):
        assert is_heavy_class("Magento\\Checkout\\Model\\Session")
        assert is_heavy_class("\\Vendor\\Module\\Model\\ResourceModel\\Item\\Collection")
        assert is_heavy_class("Magento\\Framework\\Filesystem")
        assert not is_heavy_class("Vendor\\Module\\Model\\ResourceModel\\Item\\CollectionFactory")
        assert not is_heavy_class("Magento\\Framework\\Session\\SessionManagerInterface")
        assert not is_heavy_class("Vendor\\Module\\Model\\Cart")

    def test_missing_proxy_is_reported(self, memory_file):
        di_index = DiConfigIndex.build([memory_file(f"{MODULE}/etc/di.xml", EMPTY_DI)])
        found = find_heavy_dependencies_without_proxy([self._cart(memory_file)], di_index)
        assert len(found) == 1
        dependency = found[0]
        assert dependency.class_name == "Vendor\\Module\\Model\\Cart"
        assert dependency.parameter == "checkoutSession"
        assert dependency.type_name == "Magento\\Checkout\\Model\\Session"
        assert dependency.proxy == "Magento\\Checkout\\Model\\Session\\Proxy"
        assert dependency.di_file == f"/shop/{MODULE}/etc/di.xml"

    def test_proxy_argument_satisfies(self, memory_file):
        di_index = DiConfigIndex.build([memory_file(f"{MODULE}/etc/di.xml", CART_PROXY)])
        assert find_heavy_dependencies_without_proxy([self._cart(memory_file)], di_index) == []

    def test_proxy_in_area_di_of_same_module_satisfies(self, memory_file):
        di_index = DiConfigIndex.build([
            memory_file(f"{MODULE}/etc/di.xml", EMPTY_DI),
            memory_file(f"{MODULE}/etc/frontend/di.xml", CART_PROXY),
        ])
        assert find_heavy_dependencies_without_proxy([self._cart(memory_file)], di_index) == []

    def test_proxy_in_another_module_does_not_count(self, memory_file):
        di_index = DiConfigIndex.build([
            memory_file(f"{MODULE}/etc/di.xml", EMPTY_DI),
            memory_file("app/code/Vendor/Other/etc/di.xml", CART_PROXY),
        ])
        found = find_heavy_dependencies_without_proxy([self._cart(memory_file)], di_index)
        assert [d.parameter for d in found] == ["checkoutSession"]

    def test_without_any_di_file(self, memory_file):
        found = find_heavy_dependencies_without_proxy([self._cart(memory_file)], DiConfigIndex())
        assert found[0].di_file == f"/shop/{MODULE}/etc/di.xml"

    def test_unresolved_storage_is_excluded(self, memory_file):
        text = CART.replace("$this->checkoutSession = $checkoutSession;", "$checkoutSession->start();")
        found = find_heavy_dependencies_without_proxy([self._cart(memory_file, text)], DiConfigIndex())
        assert found == []

    def test_parent_forwarding_keeps_the_parameter(self, memory_file):
        text = CART.replace(
            "$this->checkoutSession = $checkoutSession;", "parent::__construct($checkoutSession);",
        )
        found = find_heavy_dependencies_without_proxy([self._cart(memory_file, text)], DiConfigIndex())
        assert [d.parameter for d in found] == ["checkoutSession"]

    def test_same_namespace_type_is_qualified(self, memory_file):
        source = analyze_file(memory_file(f"{MODULE}/Model/ResourceModel/Item/Grid.php", r"""
            <?php
            namespace Vendor\Module\Model\ResourceModel\Item;

            class Grid
            {
                public function __construct(Collection $items)
                {
                    $this->items = $items;
                }
            }
        """))
        found = find_heavy_dependencies_without_proxy([source], DiConfigIndex())
        assert [d.proxy for d in found] == ["Vendor\\Module\\Model\\ResourceModel\\Item\\Collection\\Proxy"]

    def test_processor_finding(self, memory_file, run_processor):
        processor = run_processor(
            ProxyForHeavyClasses,
            memory_file(f"{MODULE}/Model/Cart.php", CART),
            memory_file(f"{MODULE}/etc/di.xml", EMPTY_DI),
        )
        findings = processor.findings_for("noProxyUsedForHeavyClasses")
        assert len(findings) == 1
        assert findings[0].line == 8
        assert findings[0].file_path == f"/shop/{MODULE}/Model/Cart.php"
        assert dict(findings[0].metadata) == {
            "diFile": f"/shop/{MODULE}/etc/di.xml",
            "type": "Vendor\\Module\\Model\\Cart",
            "argument": "checkoutSession",
            "proxy": "Magento\\Checkout\\Model\\Session\\Proxy",
        }


class TestCommandProxies:
    """Console command dependencies."""

    COMMAND = r"""
        <?php
        namespace Vendor\Module\Console\Command;

        use Magento\Catalog\Api\ProductRepositoryInterface;
        use Magento\Catalog\Model\ProductFactory;
        use Symfony\Component\Console\Command\Command;

        class Sync extends Command
        {
            public function __construct(
                ProductRepositoryInterface $productRepository,
                ProductFactory $productFactory,
                string $name = null
            ) {
                $this->productRepository = $productRepository;
                $this->productFactory = $productFactory;
                parent::__construct($name);
            }
        }
    """

    REGISTRATION = f"""
        <?xml version="1.0"?>
        <config {XSI}>
            <type name="Magento\\Framework\\Console\\CommandList">
                <arguments>
                    <argument name="commands" xsi:type="array">
                        <item name="vendor_sync" xsi:type="object">Vendor\\Module\\Console\\Command\\Sync</item>
                    </argument>
                </arguments>
            </type>
            {{proxy}}
        </config>
    """

    PROXY = (
        '<type name="Vendor\\Module\\Console\\Command\\Sync"><arguments>'
        '<argument name="productRepository" xsi:type="object">'
        'Magento\\Catalog\\Api\\ProductRepositoryInterface\\Proxy</argument>'
        '</arguments></type>'
    )

    def _run(self, memory_file, run_processor, proxy=""):
        return run_processor(
            NoProxyInCommands,
            memory_file(f"{MODULE}/Console/Command/Sync.php", self.COMMAND),
            memory_file(f"{MODULE}/etc/di.xml", self.REGISTRATION.replace("{proxy}", proxy)),
        )

    def test_unproxied_dependency(self, memory_file, run_processor):
        findings = self._run(memory_file, run_processor).findings_for("noProxyUsedInCommands")
        assert [f.metadata["argument"] for f in findings] == ["productRepository"]
        assert findings[0].line == 6
        assert findings[0].metadata["proxy"] == "Magento\\Catalog\\Api\\ProductRepositoryInterface\\Proxy"

    def test_proxied_dependency(self, memory_file, run_processor):
        processor = self._run(memory_file, run_processor, proxy=self.PROXY)
        assert processor.found_count == 0

    def test_command_outside_scan_is_ignored(self, memory_file, run_processor):
        processor = run_processor(
            NoProxyInCommands,
            memory_file(f"{MODULE}/etc/di.xml", self.REGISTRATION.replace("{proxy}", "")),
        )
        assert processor.found_count == 0

    def test_di_index_lists_commands(self):
        di = SourceFile.in_memory(f"/shop/{MODULE}/etc/di.xml", self.REGISTRATION.replace("{proxy}", "").strip())
        di_index = DiConfigIndex.build([di])
        assert [c.command_class for c in di_index.commands] == ["Vendor\\Module\\Console\\Command\\Sync"]
