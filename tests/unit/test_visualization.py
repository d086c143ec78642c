"""Tests for story graph visualization."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from storypath.graph import StoryGraph
from storypath.visualization import build_story_diagram, render_dot, render_mermaid

if TYPE_CHECKING:
    from collections.abc import Callable


class TestBuildStoryDiagram:
    """Tests for build_story_diagram()."""

    def test_nodes_and_edges(self, small_graph: StoryGraph) -> None:
        diagram = build_story_diagram(small_graph, "start")

        assert [node.id for node in diagram.nodes] == ["start", "middle", "good", "bad", "meh"]
        assert len(diagram.edges) == 4
        assert not any(edge.is_broken for edge in diagram.edges)

        start, _, good, bad, meh = diagram.nodes
        assert start.is_start
        assert good.outcome == "positive"
        assert good.badge == "kindness"
        assert bad.outcome == "negative"
        assert bad.badge is None
        assert meh.outcome == "neutral"

    def test_missing_targets_become_placeholders(self, broken_graph: StoryGraph) -> None:
        diagram = build_story_diagram(broken_graph, "start")

        placeholder = diagram.nodes[-1]
        assert placeholder.id == "nowhere"
        assert placeholder.is_missing
        assert placeholder.label == "missing: nowhere"
        [edge] = diagram.edges
        assert edge.is_broken

    def test_malformed_choices_are_skipped(self) -> None:
        graph = StoryGraph.from_dict(
            {"a": {"id": "a", "text": "A", "choices": [{"text": "No target"}]}}
        )
        assert build_story_diagram(graph, "a").edges == []

    def test_long_text_is_truncated(self, make_scene: Callable[..., dict[str, Any]]) -> None:
        graph = StoryGraph.from_dict({"a": make_scene("a", text="x" * 100)})
        [node] = build_story_diagram(graph, "a", max_label=20).nodes

        assert len(node.label) == 20
        assert node.label.endswith("...")


class TestRenderDot:
    """Tests for render_dot()."""

    def test_structure(self, small_graph: StoryGraph) -> None:
        dot = render_dot(build_story_diagram(small_graph, "start"))

        assert dot.startswith("digraph story {")
        assert dot.endswith("}")
        assert '"start" -> "middle" [label="Go on"];' in dot
        assert "doubleoctagon" in dot
        assert "[kindness]" in dot

    def test_no_labels(self, small_graph: StoryGraph) -> None:
        dot = render_dot(build_story_diagram(small_graph, "start"), no_labels=True)
        assert '"start" -> "middle";' in dot

    def test_broken_edges_are_dashed(self, broken_graph: StoryGraph) -> None:
        dot = render_dot(build_story_diagram(broken_graph, "start"))
        assert '"start" -> "nowhere" [label="Into the void" style="dashed"' in dot

    def test_escapes_quotes(self, make_scene: Callable[..., dict[str, Any]]) -> None:
        graph = StoryGraph.from_dict({"a": make_scene("a", text='She said "hi"')})
        dot = render_dot(build_story_diagram(graph, "a"))
        assert 'She said \\"hi\\"' in dot


class TestRenderMermaid:
    """Tests for render_mermaid()."""

    def test_structure(self, small_graph: StoryGraph) -> None:
        mermaid = render_mermaid(build_story_diagram(small_graph, "start"))

        assert mermaid.startswith("graph LR")
        assert 's_start["Text of start"]:::start' in mermaid
        assert 's_good(("Text of good")):::positive' in mermaid
        assert 's_start -->|"Go on"| s_middle' in mermaid
        assert "classDef positive" in mermaid
        assert "linkStyle" not in mermaid

    def test_broken_edges(self, broken_graph: StoryGraph) -> None:
        mermaid = render_mermaid(build_story_diagram(broken_graph, "start"), no_labels=True)

        assert "s_start -.-> s_nowhere" in mermaid
        assert ":::missing" in mermaid
        assert "linkStyle 0 stroke:" in mermaid

    def test_ids_are_made_safe(self, make_scene: Callable[..., dict[str, Any]]) -> None:
        graph = StoryGraph.from_dict(
            {
                "cycle-breaker": make_scene("cycle-breaker", is_ending=True),
                "start": make_scene("start", ("Win", "cycle-breaker")),
            }
        )
        mermaid = render_mermaid(build_story_diagram(graph, "start"))
        assert "s_start -->|\"Win\"| s_cycle_breaker" in mermaid

    def test_keyword_scene_id(self, make_scene: Callable[..., dict[str, Any]]) -> None:
        """A scene called ``end`` must not become the Mermaid ``end`` keyword."""
        graph = StoryGraph.from_dict(
            {
                "start": make_scene("start", ("Finish", "end")),
                "end": make_scene("end", is_ending=True),
            }
        )
        mermaid = render_mermaid(build_story_diagram(graph, "start"))

        assert 's_start -->|"Finish"| s_end' in mermaid
        assert "s_end((" in mermaid
        assert "\n  end" not in mermaid

    def test_similar_ids_stay_distinct(self, make_scene: Callable[..., dict[str, Any]]) -> None:
        graph = StoryGraph.from_dict(
            {
                "start": make_scene("start", ("Dash", "a-b"), ("Underscore", "a_b")),
                "a-b": make_scene("a-b", is_ending=True),
                "a_b": make_scene("a_b", is_ending=True),
            }
        )
        mermaid = render_mermaid(build_story_diagram(graph, "start"))

        assert 's_start -->|"Dash"| s_a_b\n' in mermaid
        assert 's_start -->|"Underscore"| s_a_b_2\n' in mermaid
