from lorebook.core.activation.gate import ActivationGate, SeededRandomSource, priority_key


def test_probability_zero_never_activates(make_rule, fixed_rolls):
    rule = make_rule(keywords=["x"], probability=0)
    result = ActivationGate(fixed_rolls(default=0.0)).apply([rule], [])

    assert result.activated == []
    assert result.suppressed == [rule]


def test_probability_hundred_always_activates(make_rule, fixed_rolls):
    rule = make_rule(keywords=["x"], probability=100)
    result = ActivationGate(fixed_rolls(default=99.999)).apply([rule], [])

    assert result.activated == [rule]


def test_roll_must_be_strictly_below_probability(make_rule, fixed_rolls):
    rule = make_rule(keywords=["x"], probability=40)

    assert ActivationGate(fixed_rolls([39.99])).apply([rule], []).activated == [rule]
    assert ActivationGate(fixed_rolls([40.0])).apply([rule], []).activated == []


def test_always_active_rules_do_not_roll(make_rule, fixed_rolls):
    constant = make_rule(always_active=True, probability=0)
    source = fixed_rolls(default=99.0)
    result = ActivationGate(source).apply([], [constant])

    assert result.activated == [constant]
    assert source.calls == 0


def test_one_roll_per_matched_rule_in_order(make_rule, fixed_rolls):
    a = make_rule(keywords=["x"], probability=50)
    b = make_rule(keywords=["x"], probability=50)
    result = ActivationGate(fixed_rolls([10.0, 90.0])).apply([a, b], [])

    assert result.rolls == {a.id: 10.0, b.id: 90.0}
    assert result.activated == [a]
    assert result.suppressed == [b]


def test_seeded_activation_rate(make_rule):
    rule = make_rule(keywords=["x"], probability=30)
    gate = ActivationGate(SeededRandomSource(seed=1234))

    hits = sum(1 for _ in range(10_000) if gate.apply([rule], []).activated)

    assert 2_700 <= hits <= 3_300


def test_seeded_sources_are_reproducible():
    a = SeededRandomSource(seed=7)
    b = SeededRandomSource(seed=7)
    assert [a.roll() for _ in range(5)] == [b.roll() for _ in range(5)]


def test_priority_key_orders_by_order_then_token_priority_then_age(make_rule):
    low = make_rule(order=10)
    high = make_rule(order=200)
    tie_old = make_rule(order=100, token_priority=50)
    tie_new = make_rule(order=100, token_priority=50)
    tie_boost = make_rule(order=100, token_priority=150)

    ordered = sorted([low, tie_new, tie_old, high, tie_boost], key=priority_key)

    assert [r.id for r in ordered] == [high.id, tie_boost.id, tie_old.id, tie_new.id, low.id]


def test_ceiling_keeps_highest_priority(make_rule):
    rules = [make_rule(keywords=["x"], order=o, max_activations_per_turn=2) for o in (10, 30, 20)]

    kept, trimmed = ActivationGate.apply_activation_ceiling(rules)

    assert [r.order for r in kept] == [30, 20]
    assert [r.order for r in trimmed] == [10]


def test_ceiling_uses_smallest_cap_of_kept_rules(make_rule):
    top = make_rule(keywords=["x"], order=300, max_activations_per_turn=1)
    mid = make_rule(keywords=["x"], order=200)
    low = make_rule(keywords=["x"], order=100, max_activations_per_turn=5)

    kept, trimmed = ActivationGate.apply_activation_ceiling([low, mid, top])

    assert kept == [top]
    assert set(r.id for r in trimmed) == {mid.id, low.id}


def test_ceiling_rule_with_cap_below_kept_count_is_trimmed(make_rule):
    a = make_rule(keywords=["x"], order=300)
    b = make_rule(keywords=["x"], order=200)
    capped = make_rule(keywords=["x"], order=100, max_activations_per_turn=2)

    kept, trimmed = ActivationGate.apply_activation_ceiling([a, b, capped])

    assert kept == [a, b]
    assert trimmed == [capped]


def test_no_caps_keeps_everything(make_rule):
    rules = [make_rule(keywords=["x"]) for _ in range(4)]
    kept, trimmed = ActivationGate.apply_activation_ceiling(rules)

    assert len(kept) == 4
    assert trimmed == []


def test_always_active_rules_bypass_ceiling(make_rule, fixed_rolls):
    constants = [make_rule(always_active=True) for _ in range(3)]
    capped = make_rule(keywords=["x"], max_activations_per_turn=1)

    result = ActivationGate(fixed_rolls()).apply([capped], constants)

    assert len(result.activated) == 4
