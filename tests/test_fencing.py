from distance.fencing import RunFence


def test_latest_ticket_wins() -> None:
    fence = RunFence()
    first = fence.issue()
    second = fence.issue()

    assert not fence.is_current(first)
    assert fence.is_current(second)
    assert second.generation > first.generation


def test_keys_are_fenced_independently() -> None:
    fence = RunFence()
    alpha = fence.issue("alpha")
    beta = fence.issue("beta")

    assert fence.is_current(alpha)
    assert fence.is_current(beta)


def test_release_forgets_only_the_current_ticket() -> None:
    fence = RunFence()
    stale = fence.issue("alpha")
    current = fence.issue("alpha")

    fence.release(stale)
    assert len(fence) == 1
    assert fence.is_current(current)

    fence.release(current)
    assert len(fence) == 0
    assert not fence.is_current(current)
