import random

import pytest

from qrmenu.cart import Cart, OptionSet, Selections, canonical_option, required_option
from qrmenu.core.exceptions import MissingSelectionError, ValidationError
from qrmenu.customer import SessionStore, group_menu
from qrmenu.schemas import MenuItem


class TestOptions:
    def test_canonical_option_lowercases_and_strips(self):
        assert canonical_option("spiciness", "  Pedas ") == "pedas"
        assert canonical_option("temperature", "Tidak Dingin") == "tidak dingin"

    def test_sedang_is_an_alias(self):
        assert canonical_option("spiciness", "sedang") == "pedas sedang"

    def test_empty_value_clears_the_choice(self):
        assert canonical_option("temperature", None) == ""

    def test_unknown_value_rejected(self):
        with pytest.raises(ValidationError):
            canonical_option("spiciness", "extra hot")

    def test_unknown_option_rejected(self):
        with pytest.raises(ValidationError):
            canonical_option("sweetness", "manis")

    @pytest.mark.parametrize("category, expected", [
        ("menu mie-aceh", "spiciness"),
        ("menu mie-banggodrong", "spiciness"),
        ("minuman-kopi", "temperature"),
        ("minuman-nonkopi", "temperature"),
        ("makanan-nasi", None),
        (None, None),
    ])
    def test_required_option_by_category(self, category, expected):
        assert required_option(category) == expected


class TestCart:
    def test_same_options_bump_quantity(self, menu):
        cart = Cart()
        cart.add_line(menu[3], OptionSet(spiciness="pedas"))
        cart.add_line(menu[3], OptionSet(spiciness="pedas"))

        assert len(cart) == 1
        assert cart.lines[0].quantity == 2
        assert cart.total_price() == 44000

    def test_different_options_make_separate_lines(self, menu):
        cart = Cart()
        cart.add_line(menu[3], OptionSet(spiciness="pedas"))
        cart.add_line(menu[3], OptionSet(spiciness="tidak pedas"))

        assert len(cart) == 2
        assert cart.total_items() == 2

    def test_missing_required_option_leaves_cart_unchanged(self, menu):
        cart = Cart()
        cart.add_line(menu[1], OptionSet())

        with pytest.raises(MissingSelectionError) as exc:
            cart.add_line(menu[5], OptionSet(spiciness="pedas"))

        assert "dingin/tidak dingin" in exc.value.message
        assert len(cart) == 1

    def test_remove_line_drops_at_zero(self, menu):
        cart = Cart()
        options = OptionSet(temperature="dingin")
        cart.add_line(menu[5], options)
        cart.add_line(menu[5], options)

        assert cart.remove_line(5, options).quantity == 1
        assert cart.remove_line(5, options) is None
        assert cart.is_empty

    def test_line_keeps_price_at_first_add(self, menu):
        cart = Cart()
        cart.add_line(menu[1], OptionSet())
        repriced = menu[1].model_copy(update={"price": 30000})

        cart.add_line(repriced, OptionSet())

        assert cart.lines[0].quantity == 2
        assert cart.total_price() == 2 * 25000

    def test_remove_absent_line_is_a_no_op(self, menu):
        cart = Cart()
        cart.add_line(menu[3], OptionSet(spiciness="pedas"))

        assert cart.remove_line(3, OptionSet(spiciness="tidak pedas")) is None
        assert cart.remove_line(1, OptionSet()) is None
        assert cart.total_items() == 1
        assert cart.lines[0].quantity == 1

    def test_random_add_remove_sequences_keep_counts_consistent(self, menu):
        rng = random.Random(20261019)
        choices = [
            (menu[1], OptionSet()),
            (menu[3], OptionSet(spiciness="pedas")),
            (menu[3], OptionSet(spiciness="tidak pedas")),
            (menu[5], OptionSet(temperature="dingin")),
        ]
        cart = Cart()
        expected = {}

        for _ in range(500):
            item, options = rng.choice(choices)
            key = (item.id_menu, options)
            if rng.random() < 0.55:
                cart.add_line(item, options)
                expected[key] = expected.get(key, 0) + 1
            else:
                cart.remove_line(item.id_menu, options)
                if expected.get(key, 0) > 1:
                    expected[key] -= 1
                else:
                    expected.pop(key, None)

            assert all(line.quantity > 0 for line in cart)
            assert cart.total_items() == sum(line.quantity for line in cart)
            assert {(line.menu_item_id, line.options): line.quantity for line in cart} == expected

    def test_delete_line_only_touches_matching_options(self, menu):
        cart = Cart()
        cart.add_line(menu[3], OptionSet(spiciness="pedas"))
        cart.add_line(menu[3], OptionSet(spiciness="pedas sedang"))

        cart.delete_line(3, OptionSet(spiciness="pedas"))

        assert [line.options.spiciness for line in cart] == ["pedas sedang"]

    def test_from_order_items_merges_duplicates(self, placed_order):
        items = placed_order.items + [placed_order.items[0]]
        cart = Cart.from_order_items(items)

        assert len(cart) == 2
        assert cart.find_line(3, OptionSet(spiciness="pedas")).quantity == 4
        assert cart.total_price() == 4 * 22000 + 18000

    def test_to_dict_totals(self, menu):
        cart = Cart()
        cart.add_line(menu[1], OptionSet())
        data = cart.to_dict()

        assert data["total_items"] == 1
        assert data["total_price"] == 25000
        assert data["lines"][0]["options"] == {"spiciness": "", "temperature": ""}


class TestSelections:
    def test_select_keeps_the_other_option(self):
        selections = Selections()
        selections.select(5, "temperature", "dingin")
        updated = selections.select(5, "spiciness", "pedas")

        assert updated == OptionSet(spiciness="pedas", temperature="dingin")

    def test_reset(self):
        selections = Selections()
        selections.select(3, "spiciness", "pedas")
        selections.reset()

        assert selections.get(3) == OptionSet()


class TestCustomerMenu:
    def test_group_menu_orders_known_categories_first(self):
        items = [
            MenuItem(id_menu=1, name="Teh Tarik", price=10000, category="minuman-nonkopi"),
            MenuItem(id_menu=2, name="Sate", price=30000, category="spesial-malam"),
            MenuItem(id_menu=3, name="Nasi Uduk", price=15000, category="makanan-nasi"),
            MenuItem(id_menu=4, name="Kerupuk", price=2000, category="makanan-nasi", is_available=False),
        ]

        groups = group_menu(items)

        assert [g["category"] for g in groups] == ["makanan-nasi", "minuman-nonkopi", "spesial-malam"]
        assert groups[0]["display_name"] == "MAKANAN - NASI"
        assert groups[2]["display_name"] == "SPESIAL-MALAM"
        assert [i["name"] for i in groups[0]["items"]] == ["Nasi Uduk"]

    def test_sessions_are_per_table_and_expire(self):
        now = [0.0]
        store = SessionStore(ttl_seconds=60, clock=lambda: now[0])

        first = store.get_or_create(None, "5")
        assert store.get_or_create(first.session_id, "5") is first

        other_table = store.get_or_create(first.session_id, "6")
        assert other_table is not first
        assert len(store) == 2

        now[0] = 120.0
        fresh = store.get_or_create(first.session_id, "5")
        assert fresh is not first
        assert len(store) == 1
