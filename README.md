# chatadapter

`chatadapter` is a library of parts for a service that puts one OpenAI-style
chat API in front of other chat backends. It covers request and response
shapes, per-request state, SSE and JSON reply writers, streaming output
matchers, a credential pool, expiring caches, configuration, and logging.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `chatadapter.model` holds the data shapes.
  - `Keyv` is a dict with forgiving typed accessors: `get_string`, `get_keyv`, `is_value`, `is_empty` and others.
  - `Completion`, `Generation`, `Embed`, `Model`, `Choice` and `Response` build themselves from JSON objects with `from_dict` and serialise with `to_dict`.
- `chatadapter.context` defines `RequestContext`. It holds the request, a key/value store for the request, and the response being written: status, headers and body chunks. It also has helpers such as `get_completion`, `get_tool_value` and `get_completion_usage`.
- `chatadapter.response` writes the replies.
  - `response` and `reason_response` write complete chat replies.
  - `sse_response` and `reason_sse_response` write streamed chunks. Passing the content `"[DONE]"` closes the stream.
  - `tool_call_response` and `sse_tool_call_response` write tool calls.
  - `error` writes `{"error": {"message": ...}}`. With code `-1`, the status becomes 401 for authorisation failures (including an `UpstreamError` with code 401), and 500 otherwise.
  - `message_validator` checks message roles.
  - `split_each` cuts text into pieces of 1000 characters.
- `chatadapter.roles` holds the role markers used to flatten a conversation into one prompt, per model family: Claude, Bing, GPT, DeepSeek and the default.
- `chatadapter.matcher` holds the streaming matchers. A `SymbolMatcher` watches the generated text for a marker and hands the buffered text to a handler.
  - `new_matchers` combines configured rewrite rules with matchers for stop sequences and role markers. When such a marker appears, its handler emits `response.EOF`.
  - `exec_matchers` runs the matchers in order.
  - Rules come from the `matcher` list in the configuration. Each rule has the keys `match`, `over`, `notice`, `regex` (`"pattern": "replacement"`), `think_reason` and `max`.
- `chatadapter.tokenizer.Parser` splits text into plain runs and inline elements whose tag names are accepted, such as `<tag content="cat" llm />`. `NodeElem` has `get_str`, `get_int` and `get_bool` for reading attributes.
- `chatadapter.poll.PollContainer` hands out items round-robin.
  - Each item carries a marker: ready (0), in use (1) or failed (2).
  - A failed item becomes ready again after `reset_time` seconds. A background thread does this, and `reset_expired` does it on demand.
- `chatadapter.cache.CacheManager` is a thread-safe in-memory store with expiry for each entry. `tool_tasks_cache_manager()` and the other named functions return shared instances.
- `chatadapter.tokens.calc_tokens` estimates GPT token counts. It is a heuristic, not an exact encoder. `calc_usage_tokens` builds a usage block from it.
- `chatadapter.tool_messages.extract_tool_messages` removes the trailing tool calls and tool results from a completion and returns them.
- `chatadapter.basic` provides `random_hex` and `calc_hex` (SHA-1).
- `chatadapter.inited` handles configuration and start-up.
  - `Environment` holds the configuration, usually read from YAML with `Environment.from_file`. Keys are dotted and case-insensitive.
  - `add_initialized` and `add_exited` register hooks. `initialized(env)` runs the start-up hooks and, in the main thread, installs SIGINT/SIGTERM handlers that run the exit hooks.
- `chatadapter.logger.init_logger(base_path, level)` logs to stdout and to daily `background-YYYY-MM-DD.log` files, which are kept for seven days. `log_level` maps `trace`, `debug`, `warn` and `error` to logging levels; any other name gives `info`.
- `chatadapter.helper.exec_helper` starts the platform's helper executable under `bin/` with `--port` and, if given, `--proxies`. `exit_helper` stops it.

### Start-up hooks

Importing the modules registers these start-up hooks:

- `cache` resets its shared caches.
- `matcher` loads the `matcher` rules.
- `helper` starts the helper when `browser-less.enabled` is true and `browser-less.port` is set.

## What the package does not do

The package has no HTTP server, no command-line program and no backend adapters. It does not route requests, and it does not call any chat service. It does not build the tool-calling prompts or choose tools from a model's answer. An application that uses these parts must supply its own server and its own backends.