from lorebook.core.activation.scan import ScanSources, ScanTextCache, build_scan_text


def _sources():
    return ScanSources(
        player_input="I open the gate",
        player_history=("hello", "look around"),
        narration_history=("n1", "n2", "n3"),
        memory_notes=("m1", "m2"),
    )


def test_player_entries_end_with_latest_input():
    assert _sources().player_entries() == ["hello", "look around", "I open the gate"]


def test_depth_takes_most_recent_entries_per_source():
    text = build_scan_text(_sources(), 1)
    assert text.split("\n") == ["I open the gate", "n3", "m2"]


def test_source_order_is_player_narration_memories():
    text = build_scan_text(_sources(), 2)
    assert text.split("\n") == ["look around", "I open the gate", "n2", "n3", "m1", "m2"]


def test_disabled_sources_are_skipped():
    text = build_scan_text(_sources(), 5, player=False, memories=False)
    assert text.split("\n") == ["n1", "n2", "n3"]


def test_blank_entries_dropped():
    sources = ScanSources(player_input="", narration_history=("", "  ", "real"))
    assert build_scan_text(sources, 5) == "real"


def test_nothing_enabled_gives_empty_text():
    assert build_scan_text(_sources(), 5, player=False, narration=False, memories=False) == ""


def test_cache_shares_text_between_identical_scan_settings(make_rule):
    cache = ScanTextCache(_sources())
    a = make_rule(scan_depth=1)
    b = make_rule(scan_depth=1)
    c = make_rule(scan_depth=1, scan_memories=False)

    assert cache.text_for(a) == "I open the gate\nn3\nm2"
    assert cache.text_for(b) is cache.text_for(a)
    assert cache.text_for(c) == "I open the gate\nn3"
    assert len(cache._texts) == 2
