import pytest

from fzfterm.util.exithooks import at_exit, run_at_exit_funcs


def test_at_exit_order_and_single_run():
    called = []
    for n in range(4):
        at_exit(lambda n=n: called.append(n))
    run_at_exit_funcs()
    assert called == [3, 2, 1, 0]

    run_at_exit_funcs()
    assert called == [3, 2, 1, 0]


def test_at_exit_rejects_none():
    with pytest.raises(TypeError):
        at_exit(None)