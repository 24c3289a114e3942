from ai_tutor.content_store import (
    P5_CDN_URL,
    render_environment_page,
    strip_code_fences,
)


def test_strip_code_fences():
    assert strip_code_fences("```javascript\nfunction setup() {}\n```") == "function setup() {}"
    assert strip_code_fences("```\nlet x = 1;\n```") == "let x = 1;"
    assert strip_code_fences("  function draw() {}  ") == "function draw() {}"


def test_environment_page_wraps_code_with_p5():
    page = render_environment_page("function setup() { createCanvas(950, 750); }")
    assert P5_CDN_URL in page
    assert '<div id="p5-container"></div>' in page
    assert "function setup() { createCanvas(950, 750); }" in page
    assert page.startswith("<!DOCTYPE html>")


def test_ensure_initialized_seeds_templates(store):
    store.ensure_initialized()

    assert store.lesson_path.name == "lesson-content.html"
    assert store.environment_path.name == "interactive-environment.html"
    assert "Ready to learn?" in store.read_lesson()
    assert "<html" in store.read_environment().lower()


def test_ensure_initialized_keeps_existing_content(store):
    store.ensure_initialized()
    store.write_lesson("<h2>Kept</h2>")

    store.ensure_initialized()

    assert store.read_lesson() == "<h2>Kept</h2>"


def test_write_environment_strips_fences_and_wraps(store):
    assert store.write_environment("```js\nfunction draw() { circle(1, 2, 3); }\n```")

    page = store.read_environment()
    assert "function draw() { circle(1, 2, 3); }" in page
    assert "```" not in page
    assert P5_CDN_URL in page


def test_writes_leave_no_temp_files(store):
    store.write_lesson("<p>one</p>")
    store.write_lesson("<p>two</p>")

    assert sorted(p.name for p in store.base_dir.iterdir()) == ["lesson-content.html"]
    assert store.read_lesson() == "<p>two</p>"


def test_reset_restores_templates(store):
    store.ensure_initialized()
    original_lesson = store.read_lesson()
    original_environment = store.read_environment()
    store.write_lesson("<h2>Custom</h2>")
    store.write_environment("function setup() {}")

    store.reset()

    assert store.read_lesson() == original_lesson
    assert store.read_environment() == original_environment


def test_write_failure_returns_false(tmp_path):
    from ai_tutor.content_store import ContentStore

    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    store = ContentStore(str(blocker))

    assert store.write_lesson("<p>x</p>") is False
