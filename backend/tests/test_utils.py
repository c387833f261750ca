from types import SimpleNamespace

import pytest

from elearning.utils import ordering, rate_limit
from elearning.utils.csv_users import parse_users_csv
from elearning.utils.rate_limit import InMemoryRateLimiter
from elearning.utils.slug import generate_slug, unique_slug
from elearning.utils.uploads import sniff_image, validate_filename


def _items(*ids):
    return [SimpleNamespace(id=i, order_index=n) for n, i in enumerate(ids)]


def _ids(items):
    assert [it.order_index for it in items] == list(range(len(items)))
    return [it.id for it in items]


def test_slug_initials_skip_common_words():
    assert generate_slug('Introduction to Machine Learning') == 'iml'
    assert generate_slug('Les bases de la Programmation') == 'bp'
    assert generate_slug('Élan') == 'elan'


def test_slug_single_word():
    assert generate_slug('Python') == 'python'
    assert generate_slug('Kubernetes') == 'k'
    assert generate_slug('  the  ') == 'course'


def test_unique_slug_suffix():
    assert unique_slug('iml', []) == 'iml'
    assert unique_slug('iml', ['iml', 'iml-1', 'iml-3']) == 'iml-2'


def test_insert_at_clamps_and_shifts():
    new = SimpleNamespace(id=9, order_index=None)
    assert _ids(ordering.insert_at(_items(1, 2, 3), new, 1)) == [1, 9, 2, 3]
    new = SimpleNamespace(id=9, order_index=None)
    assert _ids(ordering.insert_at(_items(1, 2), new, 40)) == [1, 2, 9]
    assert _ids(ordering.insert_at(_items(1, 2), SimpleNamespace(id=9, order_index=None), None)) == [1, 2, 9]


def test_remove_and_move():
    assert _ids(ordering.remove_from(_items(1, 2, 3), 2)) == [1, 3]
    assert _ids(ordering.move_within(_items(1, 2, 3), 1, 2)) == [2, 3, 1]
    with pytest.raises(ValueError):
        ordering.move_within(_items(1, 2), 7, 0)


def test_apply_permutation_requires_exact_set():
    assert _ids(ordering.apply_permutation(_items(1, 2, 3), [3, 1, 2])) == [3, 1, 2]
    for bad in ([1, 2], [1, 2, 2], [1, 2, 3, 4], [1, 2, 5]):
        items = _items(1, 2, 3)
        with pytest.raises(ValueError):
            ordering.apply_permutation(items, bad)
        assert _ids(items) == [1, 2, 3]


def test_parse_users_csv():
    rows = parse_users_csv(b'Email,Name,Password\nA@X.COM, Ann ,pw123456\n\nb@x.com,Bob,pw123456\n')
    assert [(r['line'], r['email'], r['name'], r['role']) for r in rows] == [
        (2, 'a@x.com', 'Ann', 'STUDENT'), (4, 'b@x.com', 'Bob', 'STUDENT'),
    ]


def test_parse_users_csv_rejects_bad_input():
    with pytest.raises(ValueError):
        parse_users_csv(b'\xff\xfe\x00')
    with pytest.raises(ValueError):
        parse_users_csv(b'email,name\n')


def test_rate_limiter_window():
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60)
    assert limiter.allow('k')[0]
    assert limiter.allow('k')[0]
    allowed, retry = limiter.allow('k')
    assert not allowed and retry >= 1
    assert limiter.allow('other')[0]
    limiter.reset('k')
    assert limiter.allow('k')[0]


def test_rate_limiter_forgets_idle_keys(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(rate_limit.time, 'monotonic', lambda: clock[0])
    limiter = InMemoryRateLimiter(max_requests=5, window_seconds=60)
    for n in range(50):
        limiter.allow(f'10.0.0.1:user{n}@x.com')
    assert len(limiter._hits) == 50
    clock[0] += 61
    assert limiter.allow('fresh')[0]
    assert list(limiter._hits) == ['fresh']


def test_upload_checks():
    with pytest.raises(ValueError):
        validate_filename('../etc/passwd')
    with pytest.raises(ValueError):
        sniff_image(b'', 100)
    with pytest.raises(ValueError):
        sniff_image(b'x' * 200, 100)
    with pytest.raises(ValueError):
        sniff_image(b'plain text, not an image', 1000)
