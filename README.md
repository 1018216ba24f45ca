# kncode

A set of tools for a headless AI coding agent. Each tool takes a JSON-style
input dictionary and a `ToolContext`, and either returns a `ToolResult` or
raises a `ToolError`.

## Installation

```
pip install .
```

Run the tests with:

```
pip install ".[test]"
pytest
```

## Tools

`kncode.tools` provides:

- `file_read.FileReadTool`: read a file, or a window of its lines
  (`offset` is 1-based, `limit` is a line count). Only files inside the
  working directory may be read.
- `file_write.FileWriteTool` and `file_edit.FileEditTool`: create or
  overwrite a file, or replace one (or, with `replace_all`, every) occurrence
  of a string in it. Both stay inside the working directory, refuse content
  over 10 MiB, and write through a temporary file and an atomic rename
  (`paths.atomic_write`).
- `glob_search.GlobTool`: list files whose paths, relative to the search
  directory, match a glob (`*`, `?`, `**`, `[...]`, `{a,b}`). Directories such
  as `.git`, `node_modules`, `target`, `.venv`, `dist` and `build` are
  skipped; at most 1000 results are returned. `glob_to_regex` compiles a
  pattern on its own.
- `grep_search.GrepTool`: search file contents line by line with a Python
  regular expression, skipping hidden entries and paths excluded by
  `.gitignore` (inside a git repository) and `.ignore` files. In the default
  `content` mode each match is listed as `path:line:text`; in the other modes
  only the match count is reported, in the structured content.
- `bash.BashTool`: run a shell command with a timeout (default 120 s, at most
  one hour), or in the background with `run_in_background` (up to 20 tasks at
  a time). Output is cut at 50,000 bytes (`truncate_output`).
  `kill_background_tasks()` kills and waits for background tasks; `close()`,
  or using the tool as a context manager, kills them without waiting. A
  `sandbox` callable may be passed to turn a command into the argv to run.
- `web_fetch.WebFetchTool`: fetch an http or https URL with `httpx`,
  refusing private, loopback and link-local addresses and internal host names
  (`validate_url`, `is_private_ip`), both before the request, after DNS
  resolution and on every redirect (at most 5). HTML is converted to Markdown
  with `html_to_markdown`. An `httpx.Client` and a resolver function may be
  passed in.
- `todo_write.TodoWriteTool`: keep a todo list that is replaced on each call
  and summarised by status.
- `external.AgentTool`, `AskUserTool`, `LspTool`, `McpTool`, `SkillTool`,
  `WebSearchTool`: described to the model with their input schemas, but every
  call raises `ExecutionFailed` saying the integration is not available.

Tools are collected in a `registry.ToolRegistry`:

```python
from pathlib import Path

from kncode.tools.registry import ToolRegistry
from kncode.tools.file_read import FileReadTool
from kncode.tools.traits import ToolContext

registry = ToolRegistry()
registry.register(FileReadTool())

context = ToolContext(cwd=Path.cwd(), is_headless=True, session_id=None, tool_use_id="call-1")
result = registry.get("FileRead").call({"file_path": "README.md", "limit": 5}, context)
print(result.text())
```

Errors are raised as subclasses of `traits.ToolError`: `ValidationFailed`,
`PermissionDenied`, `ExecutionFailed` and `ToolIOError`.

## Voice

`kncode.voice` provides:

- `wake_word.WakeWordDetector`, configured by `WakeWordConfig`, which finds
  and strips a wake-word phrase at the start of a transcription, and with
  `load_models()` registers the `.onnx` model file of each wake word found in
  the model directory:

  ```python
  from kncode.voice.wake_word import WakeWordConfig, WakeWordDetector

  detector = WakeWordDetector(WakeWordConfig())
  detector.check_text_for_wake_word("Hey kn code build the project")  # "hey kn code"
  detector.strip_wake_word("Hey kn code build the project")           # "build the project"
  ```

- `tts.TextToSpeech`, configured by `TtsConfig` with a `TtsEngine`, which
  synthesises speech to a WAV file with the `espeak` program, or with `say`
  on macOS for the `system` engine, and `speak()` plays it with `afplay`
  (macOS) or `aplay` (Linux). The `piper` engine raises an error.

## What this package does not do

There is no command-line program and no agent loop: the tools are meant to be
called from your own code. Nothing here records audio, listens for wake words
on a microphone, runs wake-word models or transcribes speech; the voice
helpers only work on text you already have and on external speech programs.