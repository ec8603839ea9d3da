from itertools import product
from pathlib import Path

import pytest
from autotagger.matcher import (
    Assignment,
    CandidateFile,
    DistanceObservation,
    assign,
    compute_distances,
    contested_episodes,
    group_by_episode,
    group_by_file,
    levenshtein,
    match_files,
)
from autotagger.models import Episode


def make_episode(episode_id, text, episode_number=None):
    episode = Episode(
        id=episode_id,
        season_number=1,
        episode_number=episode_number or episode_id,
        name=f"Episode {episode_id}"
    )
    if text is not None:
        episode.attach_subtitles(text)
    return episode


def make_file(name, content):
    return CandidateFile(path=Path("/rips") / name, content=content)


STRINGS = ["", "a", "abc", "xyz", "kitten", "sitting", "Hello world", "Goodbye world", "hello world!"]


def test_levenshtein_known_values():
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("abc", "xyz") == 3
    assert levenshtein("", "abcd") == 4
    assert levenshtein("same", "same") == 0


@pytest.mark.parametrize("a,b", list(product(STRINGS, repeat=2)))
def test_levenshtein_symmetric_and_zero_iff_equal(a, b):
    assert levenshtein(a, b) == levenshtein(b, a)
    assert (levenshtein(a, b) == 0) == (a == b)


def test_levenshtein_triangle_inequality():
    for a, b, c in product(STRINGS, repeat=3):
        assert levenshtein(a, c) <= levenshtein(a, b) + levenshtein(b, c)


def test_exact_match_wins_with_closest_negative():
    e1 = make_episode(1, "Hello world")
    e2 = make_episode(2, "Goodbye world")
    candidate = make_file("title_t00", "Hello world")

    [assignment] = match_files([e1, e2], [candidate])

    assert assignment.episode is e1
    assert assignment.distance == 0
    assert assignment.closest_negative == levenshtein("Goodbye world", "Hello world")
    assert assignment.closest_negative > 0
    assert assignment.margin == assignment.closest_negative


def test_single_candidate_has_no_closest_negative():
    e1 = make_episode(1, "abc")
    candidate = make_file("title_t00", "xyz")

    [assignment] = match_files([e1], [candidate])

    assert assignment.episode is e1
    assert assignment.distance == 3
    assert assignment.closest_negative is None
    assert assignment.margin is None


def test_no_files_produces_no_observations():
    e1 = make_episode(1, "Hello world")
    assert compute_distances([e1], []) == []
    assert match_files([e1], []) == []


def test_one_assignment_per_file_in_input_order():
    episodes = [make_episode(i, text) for i, text in enumerate(["one fish", "two fish", "red fish", "blue fish"], 1)]
    files = [make_file(f"title_t0{i}", text) for i, text in enumerate(["blue fish", "one fish", "red fsh"])]

    assignments = match_files(episodes, files, max_workers=4)

    assert [a.file for a in assignments] == files
    assert [a.episode.id for a in assignments] == [4, 1, 3]
    for assignment in assignments:
        others = [levenshtein(e.subtitles, assignment.file.content) for e in episodes]
        assert assignment.distance == min(others)


def test_ties_resolve_to_lowest_episode_id():
    e7 = make_episode(7, "identical text")
    e3 = make_episode(3, "identical text")
    e5 = make_episode(5, "something else entirely")
    candidate = make_file("title_t00", "identical text")

    for _ in range(5):
        [assignment] = match_files([e7, e5, e3], [candidate])
        assert assignment.episode.id == 3
        assert assignment.distance == 0
        assert assignment.closest_negative == 0


def test_episode_without_subtitles_is_ignored():
    e1 = make_episode(1, None)
    e2 = make_episode(2, "abc")
    candidate = make_file("title_t00", "abc")

    observations = compute_distances([e1, e2], [candidate])

    assert [o.episode_id for o in observations] == [2]
    [assignment] = match_files([e1, e2], [candidate])
    assert assignment.episode is e2


def test_empty_episode_text_still_participates():
    empty = make_episode(1, "")
    real = make_episode(2, "Hello there")
    candidate = make_file("title_t00", "Hello there friend")

    [assignment] = match_files([empty, real], [candidate])

    assert assignment.episode is real
    assert assignment.closest_negative == len("Hello there friend")


def test_file_without_candidates_gets_no_match():
    unranked = make_file("title_t01", "anything")
    assignments = assign([unranked], {})
    assert assignments == [Assignment(file=unranked)]
    assert not assignments[0].matched


def test_observations_sorted_by_episode_then_distance():
    episodes = [make_episode(2, "bbbb"), make_episode(1, "aaaa")]
    files = [make_file("f1", "aaab"), make_file("f2", "aaaa"), make_file("f3", "bbbb")]

    observations = compute_distances(episodes, files, max_workers=3)

    assert len(observations) == 6
    keys = [(o.episode_id, o.distance) for o in observations]
    assert keys == sorted(keys)
    assert observations[0] == DistanceObservation(1, 0, files[1])


def test_grouping_indices():
    f1 = make_file("f1", "x")
    f2 = make_file("f2", "y")
    e1 = make_episode(1, "x")
    e2 = make_episode(2, "y")
    observations = [
        DistanceObservation(1, 0, f1),
        DistanceObservation(1, 1, f2),
        DistanceObservation(2, 0, f2),
        DistanceObservation(2, 1, f1),
    ]

    by_episode = group_by_episode(observations)
    assert by_episode == {1: [(f1, 0), (f2, 1)], 2: [(f2, 0), (f1, 1)]}

    by_file = group_by_file(by_episode, {1: e1, 2: e2})
    assert sorted((d, e.id) for d, e in by_file[f1]) == [(0, 1), (1, 2)]
    assert sorted((d, e.id) for d, e in by_file[f2]) == [(0, 2), (1, 1)]


def test_greedy_assignment_allows_shared_winner():
    e1 = make_episode(1, "the same dialogue")
    e2 = make_episode(2, "completely different words here")
    f1 = make_file("title_t00", "the same dialogue")
    f2 = make_file("title_t01", "the same dialog")

    assignments = match_files([e1, e2], [f1, f2])

    assert [a.episode.id for a in assignments] == [1, 1]
    assert contested_episodes(assignments) == {1: [f1, f2]}


def test_worker_errors_propagate(monkeypatch):
    def broken(a, b):
        raise ValueError("scoring failed")

    monkeypatch.setattr("autotagger.matcher.levenshtein", broken)
    with pytest.raises(ValueError, match="scoring failed"):
        compute_distances([make_episode(1, "abc")], [make_file("f1", "abc")])


def test_candidate_file_paths():
    candidate = make_file("title_t00", "")
    assert candidate.video_path == Path("/rips/title_t00.mkv")
    assert candidate.subtitle_path == Path("/rips/title_t00.srt")


def test_candidate_paths_keep_dotted_names():
    candidate = CandidateFile(path=Path("/rips/Show.Disc1.t00"), content="")
    assert candidate.video_path == Path("/rips/Show.Disc1.t00.mkv")
    assert candidate.subtitle_path == Path("/rips/Show.Disc1.t00.srt")
