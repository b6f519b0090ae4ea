"""Tests for matplotlib rendering of a computed layout."""

import matplotlib.pyplot as plt
from matplotlib.patches import Circle, FancyBboxPatch

from famgraph.layout import TreeLayout, compute_layout
from famgraph.plotting import plot_layout


def test_plot_layout_writes_image(persons_by_id, fake_engine, tmp_path):
    layout = compute_layout(persons_by_id, fake_engine)
    output = tmp_path / "tree.png"

    fig = plot_layout(layout, persons_by_id, output)

    assert output.exists()
    assert output.stat().st_size > 0
    plt.close(fig)


def test_boxes_colored_by_gender(persons_by_id, fake_engine, tmp_path):
    layout = compute_layout(persons_by_id, fake_engine)
    persons_by_id["I3"].data.gender = None

    fig = plot_layout(layout, persons_by_id, tmp_path / "tree.png")
    ax = fig.axes[0]
    boxes = [p for p in ax.patches if isinstance(p, FancyBboxPatch)]
    markers = [p for p in ax.patches if isinstance(p, Circle)]

    colors = sorted(tuple(round(c, 3) for c in box.get_facecolor()[:3]) for box in boxes)
    assert len(boxes) == 3
    assert len(markers) == 1
    assert colors == sorted([
        (round(0x87 / 255, 3), round(0xce / 255, 3), round(0xeb / 255, 3)),
        (round(0xff / 255, 3), round(0xb6 / 255, 3), round(0xc1 / 255, 3)),
        (round(0xe6 / 255, 3), round(0xe6 / 255, 3), round(0xfa / 255, 3)),
    ])
    labels = [t.get_text() for t in ax.texts]
    assert "John" in labels
    plt.close(fig)


def test_empty_layout(tmp_path):
    output = tmp_path / "empty.png"
    fig = plot_layout(TreeLayout(), {}, output)
    assert output.exists()
    plt.close(fig)
