import json

from ai_tutor.results import classify_tool_result, kind_for_tool


def test_kind_for_tool():
    assert kind_for_tool("generate_lesson_plan") == "lesson"
    assert kind_for_tool("mcp__tutor-tools__update_interactive_environment") == "environment"
    assert kind_for_tool("answer_question_directly") == "answer"
    assert kind_for_tool(None) == "unknown"


def test_lesson_result_reads_content_key():
    result = json.dumps({"content": "<h2>Cells</h2>", "section": "Intro", "topic": "cells"})

    update = classify_tool_result("generate_lesson_plan", result)

    assert update.kind == "lesson"
    assert update.content == "<h2>Cells</h2>"
    assert update.data["topic"] == "cells"


def test_environment_result_strips_fences():
    result = json.dumps({"code": "```javascript\nfunction setup() {}\n```", "concept": "x", "type": "game"})

    update = classify_tool_result("generate_interactive_environment", result)

    assert update.kind == "environment"
    assert update.content == "function setup() {}"


def test_json_without_expected_key_has_no_content():
    update = classify_tool_result("generate_lesson_plan", json.dumps({"section": "Intro"}))
    assert update.kind == "lesson"
    assert update.content is None


def test_non_json_result_is_used_verbatim():
    update = classify_tool_result("answer_question_directly", "Because of Rayleigh scattering.")
    assert update.kind == "answer"
    assert update.content == "Because of Rayleigh scattering."


def test_blank_result_has_no_content():
    assert classify_tool_result("generate_lesson_plan", "   ").content is None


def test_unknown_tool_is_sniffed():
    assert classify_tool_result("unknown", json.dumps({"code": "draw()"})).kind == "environment"
    assert classify_tool_result("unknown", json.dumps({"answer": "yes"})).content == "yes"
    assert classify_tool_result("unknown", "function setup() { createCanvas(1, 1); }").kind == "environment"
    assert classify_tool_result("unknown", "<h2>Heading</h2><p>body</p>").kind == "lesson"
    assert classify_tool_result("unknown", "just words").kind == "unknown"


def test_json_that_is_not_an_object_has_no_content():
    for result in ("42", "[1, 2]", '"<h2>x</h2>"', "null"):
        update = classify_tool_result("generate_lesson_plan", result)
        assert update.kind == "lesson"
        assert update.content is None
        assert update.data is None

    assert classify_tool_result("unknown", '"function setup() {}"').content is None
