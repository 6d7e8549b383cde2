from storefront.client.cart import Cart, CartLine, CartStore


def _product(product_id, price):
    return {
        "id": product_id,
        "productCode": f"MB-0{product_id}",
        "title": f"Mystery Box {product_id}",
        "label": "",
        "price": price,
        "image": "https://cdn.example.com/box.png",
    }


def test_add_creates_line_then_increments():
    cart = Cart()
    cart.add(_product(1, "₹150"))
    cart.add(_product(2, "₹249"))
    cart.add(_product(1, "₹150"))

    assert [line.product_id for line in cart.lines] == [1, 2]
    assert cart.lines[0].quantity == 2
    assert cart.count == 3
    assert cart.subtotal == 150 * 2 + 249


def test_adding_a_line_with_quantity_still_adds_one_unit():
    cart = Cart()
    cart.add(CartLine(product_id=7, title="Box", price="₹100", quantity=4))
    assert cart.count == 1


def test_quantity_below_one_is_rejected():
    cart = Cart()
    cart.add(_product(1, "₹150"))

    assert cart.update_quantity(1, 0) is False
    assert cart.update_quantity(1, -2) is False
    assert cart.lines[0].quantity == 1
    assert cart.update_quantity(1, 5) is True
    assert cart.subtotal == 750
    assert cart.update_quantity(99, 2) is False


def test_remove_and_clear():
    cart = Cart()
    cart.add(_product(1, "₹150"))
    cart.add(_product(2, "₹249"))

    assert cart.remove(1) is True
    assert cart.remove(1) is False
    assert len(cart) == 1
    cart.clear()
    assert cart.is_empty
    assert cart.subtotal == 0


def test_unparseable_price_counts_as_zero():
    cart = Cart()
    cart.add(_product(1, "Free"))
    assert cart.subtotal == 0


def test_snapshot_matches_order_items():
    cart = Cart()
    cart.add(_product(1, "₹150"))
    assert cart.snapshot() == [
        {
            "productId": 1,
            "title": "Mystery Box 1",
            "price": "₹150",
            "quantity": 1,
            "image": "https://cdn.example.com/box.png",
        }
    ]


def test_cart_survives_reload(tmp_path):
    store = CartStore(tmp_path / "cart.json")
    cart = Cart(store=store)
    cart.add(_product(1, "₹150"))
    cart.add(_product(1, "₹150"))

    reloaded = Cart(store=CartStore(tmp_path / "cart.json"))
    assert reloaded.count == 2
    assert reloaded.lines[0].price == "₹150"

    reloaded.clear()
    assert Cart(store=store).is_empty


def test_corrupt_cart_file_loads_empty(tmp_path):
    path = tmp_path / "cart.json"
    path.write_text("{not json", encoding="utf-8")
    assert Cart(store=CartStore(path)).is_empty

    path.write_text('[{"unexpected": true}]', encoding="utf-8")
    assert Cart(store=CartStore(path)).is_empty
