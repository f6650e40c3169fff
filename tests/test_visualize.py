import pytest

pytest.importorskip("matplotlib")
np = pytest.importorskip("numpy")

from memory.errors import InvalidRequest
from memory.heap import HeapAllocator
from tools.visualize_fragmentation import main, render_state, replay_frames
from memory.trace import DEMO_TRACE
from policy.placement import Strategy


def test_render_state_bins_occupancy():
    heap = HeapAllocator(8)
    heap.allocate(3)
    np.testing.assert_allclose(render_state(heap, 4), [1.0, 0.5, 0.0, 0.0])
    assert render_state(heap, 100).shape == (8,)


def test_replay_frames_marks_strategy_switch():
    H, marks, heap = replay_frames(DEMO_TRACE, 40, Strategy.BEST, width=40)
    assert H.shape == (len(DEMO_TRACE) + 1, 40)
    assert marks == [8]
    assert heap.strategy is Strategy.NEXT
    assert H[-1, 8:16].tolist() == [1.0] * 8


def test_main_writes_png(tmp_path, traces_dir):
    out = main(["--trace", str(traces_dir / "fragmentation_stressor.jsonl"),
                "--out", str(tmp_path / "heat.png"), "--width", "32"])
    assert out.exists()
    assert out.stat().st_size > 0


def test_zero_capacity_is_rejected(tmp_path):
    with pytest.raises(InvalidRequest):
        main(["--capacity", "0", "--out", str(tmp_path / "never.png")])
