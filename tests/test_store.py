import json
import random

import pytest

from leaderboard.errors import StorageError
from leaderboard.models import ScoreCandidate, ScoreEntry
from leaderboard.store import ScoreStore, EVICTED_RANK


def candidate(time_ms, name='ann', **kw):
    return ScoreCandidate(name=name, cinema='Odeon', time=time_ms, **kw)


def stored(time_ms, name='x', cinema='c'):
    return ScoreEntry.from_candidate(ScoreCandidate(name=name, cinema=cinema, time=time_ms)).model_dump()


def test_ensure_exists_creates_empty_document(tmp_path):
    path = tmp_path / 'nested' / 'scores.json'
    s = ScoreStore(path)
    s.ensure_exists()
    assert json.loads(path.read_text()) == []
    assert s.list() == []
    # existing content is left alone
    path.write_text(json.dumps([stored(5000)]))
    s.ensure_exists()
    assert len(s.load()) == 1


def test_missing_file_or_null_reads_as_empty(tmp_path):
    s = ScoreStore(tmp_path / 'absent.json')
    assert s.load() == []
    (tmp_path / 'absent.json').write_text('null')
    assert s.load() == []


def test_insert_keeps_sorted_and_bounded(tmp_path):
    s = ScoreStore(tmp_path / 'scores.json', capacity=20)
    rng = random.Random(7)
    for i in range(60):
        rank, entry = s.insert(candidate(rng.randint(3000, 600000), name=f'p{i}'))
        stored = s.load()
        times = [e.time for e in stored]
        assert times == sorted(times)
        assert len(stored) <= 20
        if rank:
            assert stored[rank - 1].id == entry.id
        else:
            assert entry.id not in {e.id for e in stored}


def test_insert_returns_rank_and_server_fields(tmp_path):
    s = ScoreStore(tmp_path / 'scores.json')
    r1, e1 = s.insert(candidate(9000))
    r2, e2 = s.insert(candidate(5000, email='a@b.c', verified=True, mobile=True))
    r3, _ = s.insert(candidate(9000))
    assert (r1, r2, r3) == (1, 1, 3)  # ties keep earlier submissions first
    assert e1.id != e2.id
    assert e2.verified is True and e2.mobile is True and e2.email == 'a@b.c'
    assert e1.date.endswith('Z') and 'T' in e1.date
    assert s.rank_of(e1.id) == 2
    assert s.rank_of('missing') == EVICTED_RANK


def test_501st_slowest_entry_is_evicted(tmp_path):
    path = tmp_path / 'scores.json'
    full = [stored(3000 + i, name=f'p{i}') for i in range(500)]
    path.write_text(json.dumps(full))
    s = ScoreStore(path)

    rank, entry = s.insert(candidate(600000))
    assert rank == EVICTED_RANK
    kept = s.load()
    assert len(kept) == 500
    assert entry.id not in {e.id for e in kept}


def test_fast_entry_pushes_out_slowest(tmp_path):
    path = tmp_path / 'scores.json'
    full = [stored(4000 + i, name=f'p{i}') for i in range(500)]
    path.write_text(json.dumps(full))
    s = ScoreStore(path)

    rank, entry = s.insert(candidate(3500))
    assert rank == 1
    kept = s.load()
    assert len(kept) == 500
    assert kept[0].id == entry.id
    assert kept[-1].time == 4498


def test_list_caps_at_limit_and_is_idempotent(tmp_path):
    s = ScoreStore(tmp_path / 'scores.json')
    for t in range(60, 0, -1):
        s.insert(candidate(3000 + t * 10))
    before = (tmp_path / 'scores.json').read_text()
    first = s.list()
    second = s.list()
    assert len(first) == 50
    assert [e.model_dump() for e in first] == [e.model_dump() for e in second]
    assert [e.time for e in first] == sorted(e.time for e in first)
    assert (tmp_path / 'scores.json').read_text() == before


def test_list_sorts_unsorted_document(tmp_path):
    path = tmp_path / 'scores.json'
    entries = [stored(t) for t in (9000, 4000, 7000)]
    path.write_text(json.dumps(entries))
    assert [e.time for e in ScoreStore(path).list()] == [4000, 7000, 9000]


@pytest.mark.parametrize('content', [
    b'{not json',
    b'{"a": 1}',
    b'[{"name": "x"}]',
    b'[\xff\xfe]',
    b'[{"name": "x", "cinema": "c", "time": 5000, "id": "a"}]',  # no date
])
def test_corrupt_document_raises_storage_error(tmp_path, content):
    path = tmp_path / 'scores.json'
    path.write_bytes(content)
    s = ScoreStore(path)
    with pytest.raises(StorageError):
        s.list()
    with pytest.raises(StorageError):
        s.insert(candidate(5000))
    # the corrupt document is not overwritten
    assert path.read_bytes() == content


def test_insert_keeps_unknown_keys_and_dates_of_existing_entries(tmp_path):
    path = tmp_path / 'scores.json'
    old = stored(7000)
    old['date'] = '2025-12-31T23:59:59.000Z'
    old['legacy_flag'] = 'kept'
    path.write_text(json.dumps([old]))

    ScoreStore(path).insert(candidate(5000))
    data = json.loads(path.read_text())
    assert data[1]['id'] == old['id']
    assert data[1]['date'] == '2025-12-31T23:59:59.000Z'
    assert data[1]['legacy_flag'] == 'kept'
    assert 'legacy_flag' not in data[0]


def test_save_leaves_no_temp_files(tmp_path):
    s = ScoreStore(tmp_path / 'scores.json')
    for t in (5000, 6000, 7000):
        s.insert(candidate(t))
    assert sorted(p.name for p in tmp_path.iterdir()) == ['scores.json']


def test_unwritable_location_raises_storage_error(tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('file, not a directory')
    s = ScoreStore(blocker / 'scores.json')
    with pytest.raises(StorageError):
        s.insert(candidate(5000))
