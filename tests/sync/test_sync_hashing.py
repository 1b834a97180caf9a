from quality_monitor.sync.pipeline.hashing import compute_return_hash, compute_row_hash


def test_row_hash_ignores_column_order():
    row = {"date": "2024-01-15", "cc": "Ivan Petrov", "type": "Wrong info", "comment": "Называл не ту цену"}
    permuted = dict(reversed(list(row.items())))
    assert list(row) != list(permuted)
    assert compute_row_hash(row) == compute_row_hash(permuted)


def test_row_hash_changes_with_content():
    row = {"date": "2024-01-15", "type": "Wrong info"}
    assert compute_row_hash(row) != compute_row_hash({**row, "type": "Rude"})
    assert len(compute_row_hash(row)) == 64


def test_return_hash_depends_on_reasons():
    reasons = [{"reason": "Wrong phone", "count": 2}]
    base = compute_return_hash("2024-01-15", "Acme", "C1", "IVP", reasons)
    assert base == compute_return_hash("2024-01-15", "Acme", "C1", "IVP", list(reasons))
    assert base != compute_return_hash("2024-01-15", "Acme", "C1", "IVP", [{"reason": "Wrong phone", "count": 3}])
    assert base != compute_return_hash("2024-01-16", "Acme", "C1", "IVP", reasons)
