"""
tests/test_templates.py
Rendering tests for the packaged CRUD templates.

Each template is rendered through TemplateRenderer with a hand-built
context and the output is checked for the PHP, Twig, YAML and XML it
must contain.  Routing output is parsed back to make sure it is valid.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Dict, List

import jinja2
import pytest
import yaml

from crudgen.metadata import MetadataRegistry
from crudgen.models import EntityMetadata
from crudgen.normalizer import normalize
from crudgen.renderer import TEMPLATES_DIR, TemplateRenderer

READ_ONLY: List[str] = ["index", "show"]
FULL: List[str] = ["index", "show", "new", "edit", "delete"]
ROUTING_NS: str = "{http://symfony.com/schema/routing}"


# ===========================================================================
# Helpers
# ===========================================================================


@pytest.fixture(scope="module")
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


def _controller_context(**overrides: Any) -> Dict[str, Any]:
    context: Dict[str, Any] = {
        "actions": READ_ONLY,
        "route_prefix": "order",
        "route_name_prefix": "order",
        "bundle": "AcmeShopBundle",
        "entity": "Order",
        "identifier": ["id"],
        "entity_class": "Order",
        "namespace": "Acme\\ShopBundle",
        "entity_namespace": "",
        "format": "yml",
    }
    context.update(overrides)
    return context


def _routing_context(**overrides: Any) -> Dict[str, Any]:
    context: Dict[str, Any] = {
        "actions": READ_ONLY,
        "route_prefix": "order",
        "route_name_prefix": "order",
        "bundle": "AcmeShopBundle",
        "entity": "Order",
        "identifier": ["id"],
    }
    context.update(overrides)
    return context


def _view_context(fields: Dict[str, Any], **overrides: Any) -> Dict[str, Any]:
    actions = overrides.pop("actions", READ_ONLY)
    context: Dict[str, Any] = {
        "bundle": "AcmeShopBundle",
        "entity": "Customer",
        "identifier": ["id"],
        "fields": fields,
        "actions": actions,
        "record_actions": [a for a in actions if a in ("show", "edit")],
        "route_prefix": "customer",
        "route_name_prefix": "customer",
    }
    context.update(overrides)
    return context


# ===========================================================================
# Tests for the renderer itself
# ===========================================================================


class TestRenderer:
    def test_packaged_templates_listed(self, renderer: TemplateRenderer) -> None:
        templates = renderer.list_templates()
        assert renderer.templates_dir == TEMPLATES_DIR
        for name in (
            "crud/base.controller.php.jinja",
            "crud/child.controller.php.jinja",
            "crud/tests/test.php.jinja",
            "crud/config/routing.yml.jinja",
            "crud/config/routing.xml.jinja",
            "crud/config/routing.php.jinja",
            "crud/views/index.html.twig.jinja",
            "crud/views/show.html.twig.jinja",
            "crud/views/new.html.twig.jinja",
            "crud/views/edit.html.twig.jinja",
        ):
            assert name in templates

    def test_missing_context_key_raises(self, renderer: TemplateRenderer) -> None:
        context = _controller_context()
        del context["bundle"]
        with pytest.raises(jinja2.UndefinedError):
            renderer.render("crud/base.controller.php.jinja", context)

    def test_no_html_escaping(self, renderer: TemplateRenderer) -> None:
        out = renderer.render("crud/base.controller.php.jinja", _controller_context())
        assert "&#39;" not in out
        assert "&gt;" not in out

    def test_custom_templates_dir(self, tmp_path) -> None:
        (tmp_path / "crud").mkdir()
        (tmp_path / "crud" / "hello.jinja").write_text("Hello {{ name|humanize }}\n")
        custom = TemplateRenderer(tmp_path)
        assert custom.render("crud/hello.jinja", {"name": "first_name"}) == "Hello First name\n"

    def test_render_file(self, renderer: TemplateRenderer, tmp_path) -> None:
        target = tmp_path / "routing" / "order.yml"
        written = renderer.render_file("crud/config/routing.yml.jinja", target, _routing_context())
        assert target.is_file()
        assert written == len(target.read_bytes())


# ===========================================================================
# Tests for controller templates
# ===========================================================================


class TestControllerTemplates:
    def test_read_only_base_controller(self, renderer: TemplateRenderer) -> None:
        out = renderer.render("crud/base.controller.php.jinja", _controller_context())

        assert out.startswith("<?php\n")
        assert "namespace Acme\\ShopBundle\\Controller\\Crud;" in out
        assert "use Acme\\ShopBundle\\Entity\\Order;" in out
        assert "abstract class BaseOrderController extends Controller" in out
        assert "public function indexAction()" in out
        assert "public function showAction($id)" in out
        assert "'AcmeShopBundle:Crud/Order:index.html.twig'" in out
        assert "newAction" not in out
        assert "deleteAction" not in out
        assert "OrderType" not in out
        assert "@Route" not in out

    def test_full_base_controller(self, renderer: TemplateRenderer) -> None:
        out = renderer.render(
            "crud/base.controller.php.jinja", _controller_context(actions=FULL)
        )

        assert "use Acme\\ShopBundle\\Form\\OrderType;" in out
        for action in ("index", "create", "new", "show", "edit", "update", "delete"):
            assert f"function {action}Action(" in out
        assert "$this->generateUrl('order_show', array('id' => $entity->getId()))" in out
        assert "->setAction($this->generateUrl('order_delete', array('id' => $id)))" in out
        assert "'delete_form' => $deleteForm->createView()" in out

    def test_annotation_routes(self, renderer: TemplateRenderer) -> None:
        out = renderer.render(
            "crud/base.controller.php.jinja",
            _controller_context(actions=FULL, format="annotation"),
        )

        assert "use Sensio\\Bundle\\FrameworkExtraBundle\\Configuration\\Route;" in out
        assert '@Route("/", name="order")' in out
        assert '@Route("/{id}/show", name="order_show")' in out
        assert '@Route("/{id}/update", name="order_update")' in out
        assert '@Method("DELETE")' in out

    def test_composite_identifier(self, renderer: TemplateRenderer) -> None:
        out = renderer.render(
            "crud/base.controller.php.jinja",
            _controller_context(
                actions=FULL,
                entity="OrderLine",
                entity_class="OrderLine",
                identifier=["order_id", "line_no"],
                format="annotation",
                route_name_prefix="order_line",
            ),
        )

        assert "public function showAction($order_id, $line_no)" in out
        assert "findOneBy(array('order_id' => $order_id, 'line_no' => $line_no))" in out
        assert "array('order_id' => $entity->getOrderId(), 'line_no' => $entity->getLineNo())" in out
        assert '@Route("/{order_id}/{line_no}/edit", name="order_line_edit")' in out

    def test_namespaced_entity(self, renderer: TemplateRenderer) -> None:
        out = renderer.render(
            "crud/base.controller.php.jinja",
            _controller_context(entity="Sales\\Order", entity_namespace="Sales"),
        )
        assert "namespace Acme\\ShopBundle\\Controller\\Crud\\Sales;" in out
        assert "use Acme\\ShopBundle\\Entity\\Sales\\Order;" in out
        assert "'AcmeShopBundle:Crud/Sales/Order:show.html.twig'" in out

    def test_child_controller(self, renderer: TemplateRenderer) -> None:
        out = renderer.render("crud/child.controller.php.jinja", _controller_context())
        assert "class OrderController extends BaseOrderController" in out
        assert "@Route" not in out

    def test_child_controller_annotation_prefix(self, renderer: TemplateRenderer) -> None:
        out = renderer.render(
            "crud/child.controller.php.jinja",
            _controller_context(format="annotation", route_prefix="shop/order"),
        )
        assert '@Route("/shop/order")' in out


# ===========================================================================
# Tests for routing templates
# ===========================================================================


class TestRoutingTemplates:
    def test_yml_read_only(self, renderer: TemplateRenderer) -> None:
        routes = yaml.safe_load(
            renderer.render("crud/config/routing.yml.jinja", _routing_context())
        )
        assert list(routes) == ["order", "order_show"]
        assert routes["order"]["path"] == "/"
        assert routes["order_show"]["path"] == "/{id}/show"
        assert routes["order_show"]["defaults"]["_controller"] == "AcmeShopBundle:Crud\\Order:show"
        assert routes["order_show"]["methods"] == ["GET"]

    def test_yml_full(self, renderer: TemplateRenderer) -> None:
        routes = yaml.safe_load(
            renderer.render("crud/config/routing.yml.jinja", _routing_context(actions=FULL))
        )
        assert list(routes) == [
            "order",
            "order_show",
            "order_new",
            "order_create",
            "order_edit",
            "order_update",
            "order_delete",
        ]
        assert routes["order_create"]["methods"] == ["POST"]
        assert routes["order_update"]["methods"] == ["POST", "PUT"]
        assert routes["order_delete"]["methods"] == ["POST", "DELETE"]

    def test_yml_composite_identifier(self, renderer: TemplateRenderer) -> None:
        routes = yaml.safe_load(
            renderer.render(
                "crud/config/routing.yml.jinja",
                _routing_context(identifier=["order_id", "line_no"]),
            )
        )
        assert routes["order_show"]["path"] == "/{order_id}/{line_no}/show"

    def test_xml(self, renderer: TemplateRenderer) -> None:
        out = renderer.render("crud/config/routing.xml.jinja", _routing_context(actions=FULL))
        root = ET.fromstring(out.encode("utf-8"))
        routes = {r.get("id"): r for r in root.iter(f"{ROUTING_NS}route")}

        assert list(routes) == [
            "order",
            "order_show",
            "order_new",
            "order_create",
            "order_edit",
            "order_update",
            "order_delete",
        ]
        assert routes["order_edit"].get("path") == "/{id}/edit"
        assert routes["order_update"].get("methods") == "POST|PUT"
        default = routes["order_show"].find(f"{ROUTING_NS}default")
        assert default is not None
        assert default.text == "AcmeShopBundle:Crud\\Order:show"

    def test_php(self, renderer: TemplateRenderer) -> None:
        out = renderer.render("crud/config/routing.php.jinja", _routing_context())
        assert out.startswith("<?php\n")
        assert "$collection->add('order', new Route('/', array(" in out
        assert "$collection->add('order_show', new Route('/{id}/show', array(" in out
        assert "'_controller' => 'AcmeShopBundle:Crud\\\\Order:show'" in out
        assert "order_new" not in out
        assert out.rstrip().endswith("return $collection;")


# ===========================================================================
# Tests for view templates
# ===========================================================================


class TestViewTemplates:
    @pytest.fixture()
    def customer_fields(
        self, customer_metadata: EntityMetadata, registry: MetadataRegistry
    ) -> Dict[str, Any]:
        return normalize(customer_metadata, registry)

    def test_index_twig_passthrough(
        self, renderer: TemplateRenderer, customer_fields: Dict[str, Any]
    ) -> None:
        out = renderer.render("crud/views/index.html.twig.jinja", _view_context(customer_fields))

        assert out.startswith("{% extends '::base.html.twig' %}\n")
        assert "{% block body -%}" in out
        assert "{% for entity in entities %}" in out
        assert "{% endfor %}" in out
        assert out.rstrip().endswith("{% endblock %}")

    def test_index_columns(
        self, renderer: TemplateRenderer, customer_fields: Dict[str, Any]
    ) -> None:
        out = renderer.render("crud/views/index.html.twig.jinja", _view_context(customer_fields))

        for header in ("Id", "Name", "Created at", "Address", "Orders"):
            assert f"<th>{header}</th>" in out
        assert "<th>Address id</th>" not in out
        assert (
            "<td><a href=\"{{ path('customer_show', { 'id': entity.id }) }}\">"
            "{{ entity.id }}</a></td>"
        ) in out
        assert "<td>{{ entity.name }}</td>" in out
        assert "<td>{{ entity.address }}</td>" in out
        assert "<td>{{ entity.orders|length }}</td>" in out
        assert "{{ entity.created_at|date('Y-m-d H:i:s') }}" in out

    def test_index_actions(
        self, renderer: TemplateRenderer, customer_fields: Dict[str, Any]
    ) -> None:
        read_only = renderer.render(
            "crud/views/index.html.twig.jinja", _view_context(customer_fields)
        )
        assert "path('customer_show', { 'id': entity.id })" in read_only
        assert "customer_edit" not in read_only
        assert "Create a new entry" not in read_only

        full = renderer.render(
            "crud/views/index.html.twig.jinja", _view_context(customer_fields, actions=FULL)
        )
        assert "path('customer_edit', { 'id': entity.id })" in full
        assert "{{ path('customer_new') }}" in full
        assert "Create a new entry" in full

    def test_show(self, renderer: TemplateRenderer, customer_fields: Dict[str, Any]) -> None:
        out = renderer.render(
            "crud/views/show.html.twig.jinja", _view_context(customer_fields, actions=FULL)
        )

        assert "<h1>Customer</h1>" in out
        assert "<th>Created at</th>" in out
        assert "{% for item in entity.orders %}" in out
        assert "<td>{{ entity.address }}</td>" in out
        assert "path('customer_edit', { 'id': entity.id })" in out
        assert "{{ form(delete_form) }}" in out

    def test_show_read_only(
        self, renderer: TemplateRenderer, customer_fields: Dict[str, Any]
    ) -> None:
        out = renderer.render("crud/views/show.html.twig.jinja", _view_context(customer_fields))
        assert "customer_edit" not in out
        assert "delete_form" not in out

    def test_new(self, renderer: TemplateRenderer) -> None:
        out = renderer.render("crud/views/new.html.twig.jinja", _view_context({}, actions=FULL))
        assert "<h1>Customer creation</h1>" in out
        assert "{{ form(form) }}" in out
        assert "{{ path('customer') }}" in out

    def test_edit_uses_raw_fields(
        self, renderer: TemplateRenderer, customer_metadata: EntityMetadata
    ) -> None:
        out = renderer.render(
            "crud/views/edit.html.twig.jinja",
            _view_context(dict(customer_metadata.field_mappings), actions=FULL),
        )
        assert "{{ form_row(edit_form.name) }}" in out
        assert "{{ form_row(edit_form.address_id) }}" in out
        assert "edit_form.id)" not in out
        assert "{{ form(delete_form) }}" in out


# ===========================================================================
# Tests for the functional test template
# ===========================================================================


class TestFunctionalTestTemplate:
    def _context(self, **overrides: Any) -> Dict[str, Any]:
        context = _controller_context(form_type_name="acme_shopbundle_order")
        context.pop("format")
        context.update(overrides)
        return context

    def test_read_only(self, renderer: TemplateRenderer) -> None:
        out = renderer.render("crud/tests/test.php.jinja", self._context())
        assert "namespace Acme\\ShopBundle\\Tests\\Controller;" in out
        assert "class OrderControllerTest extends WebTestCase" in out
        assert "public function testIndex()" in out
        assert "$client->request('GET', '/order/');" in out
        assert "testCompleteScenario" not in out

    def test_full_scenario(self, renderer: TemplateRenderer) -> None:
        out = renderer.render("crud/tests/test.php.jinja", self._context(actions=FULL))
        assert "public function testCompleteScenario()" in out
        assert "'acme_shopbundle_order[field_name]'  => 'Test'" in out
        assert "selectButton('Update')" in out
        assert "selectButton('Delete')" in out

    def test_empty_prefix(self, renderer: TemplateRenderer) -> None:
        out = renderer.render("crud/tests/test.php.jinja", self._context(route_prefix=""))
        assert "$client->request('GET', '/');" in out
