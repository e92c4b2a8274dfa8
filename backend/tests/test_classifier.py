from conftest import dim

from variant_stock.classifier import choose_primary


def test_size_dimension_wins_over_color():
    sizes = dim("variation[0]", ["S", "M", "L", "XL"])
    colors = dim("variation[1]", ["Rojo", "Azul"])

    primary, secondaries = choose_primary([sizes, colors])

    assert primary is sizes
    assert secondaries == [colors]


def test_size_dimension_found_when_listed_second():
    colors = dim("variation[0]", ["Rojo", "Azul"])
    sizes = dim("variation[1]", ["38", "39", "40"])

    primary, secondaries = choose_primary([colors, sizes])

    assert primary is sizes
    assert secondaries == [colors]


def test_classification_is_idempotent():
    dims = [dim("variation[0]", ["Rojo", "Azul"]), dim("variation[1]", ["S", "M", "L", "XL"])]
    first = choose_primary(dims)
    assert all(choose_primary(dims) == first for _ in range(5))


def test_falls_back_to_first_dimension_without_size_labels():
    a = dim("variation[0]", ["Algodón", "Lino"])
    b = dim("variation[1]", ["Rojo", "Azul"])

    primary, secondaries = choose_primary([a, b])

    assert primary is a
    assert secondaries == [b]


def test_ties_go_to_the_earliest_dimension():
    a = dim("variation[0]", ["S", "M"])
    b = dim("variation[1]", ["L", "XL"])
    assert choose_primary([a, b])[0] is a


def test_no_dimensions():
    assert choose_primary([]) == (None, [])
