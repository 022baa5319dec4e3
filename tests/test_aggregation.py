from conftest import LONDON, NEW_YORK, PARIS, PARIS_EAST
from geolocator.model.aggregation import CellScore, aggregate


def test_unknown_tokens_give_empty_map(sample_bundle):
    assert aggregate(["nowhere", "nothing"], sample_bundle.table, sample_bundle.weight) == {}


def test_empty_query(sample_bundle):
    assert aggregate([], sample_bundle.table, sample_bundle.weight) == {}


def test_single_token_weighted_probabilities(sample_bundle):
    table, weight = sample_bundle.table, sample_bundle.weight
    w = weight.weight(table.entropy("eiffel"))

    scores = aggregate(["eiffel"], table, weight)

    assert set(scores) == {PARIS, PARIS_EAST}
    assert scores[PARIS].total == 0.8 * w
    assert scores[PARIS_EAST].total == 0.2 * w
    assert scores[PARIS].count == 1


def test_sums_across_tokens(sample_bundle):
    table, weight = sample_bundle.table, sample_bundle.weight
    w_eiffel = weight.weight(table.entropy("eiffel"))
    w_louvre = weight.weight(table.entropy("louvre"))

    scores = aggregate(["eiffel", "louvre", "unknown"], table, weight)

    assert set(scores) == {PARIS, PARIS_EAST, LONDON}
    assert scores[PARIS].total == 0.8 * w_eiffel + 0.6 * w_louvre
    assert scores[PARIS].count == 2
    assert scores[LONDON].count == 1
    assert NEW_YORK not in scores


def test_duplicate_tokens_add_independently(sample_bundle):
    table, weight = sample_bundle.table, sample_bundle.weight

    once = aggregate(["yankees"], table, weight)
    twice = aggregate(["yankees", "yankees"], table, weight)

    assert set(once) == set(twice)
    for cell_id in once:
        assert twice[cell_id].total == 2 * once[cell_id].total
        assert twice[cell_id].count == 2


def test_token_order_does_not_matter(sample_bundle):
    table, weight = sample_bundle.table, sample_bundle.weight

    forward = aggregate(["eiffel", "big"], table, weight)
    backward = aggregate(["big", "eiffel"], table, weight)

    assert set(forward) == set(backward)
    for cell_id in forward:
        assert forward[cell_id].total == backward[cell_id].total


def test_each_call_returns_fresh_scores(sample_bundle):
    first = aggregate(["eiffel"], sample_bundle.table, sample_bundle.weight)
    first[PARIS].add(100.0)
    second = aggregate(["eiffel"], sample_bundle.table, sample_bundle.weight)
    assert second[PARIS].total < 100.0


def test_cell_score_add():
    score = CellScore()
    score.add(0.25)
    score.add(0.5)
    assert score.total == 0.75
    assert score.count == 2
