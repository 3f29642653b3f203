# azmem

A local-first memory store in layers, all kept in one SQLite file.

- **L0**, raw transcripts (`azmem.l0`): timestamped text entries grouped by
  session, with full-text search that ignores accents.
- **L1**, segmentations (`azmem.l1`): thematic blocks built from a session's
  transcripts, each linked to the transcripts it came from. A session may
  have several segmentations side by side.
- **L2**, facts (`azmem.l2`): typed, versioned facts with a JSON payload.
  A fact is a draft until it is validated.
- **L3**, links and pages (`azmem.l3`): typed edges between any two items,
  and pages of which at most one is active at a time.

The schema is created by `azmem.database.connect(path)`, which every store
calls when it is opened; parent folders are created as needed.

## Sensitivity and session modes

Every transcript, block and fact has a `sensitivity` flag.
`azmem.session.SessionMode` has two values:

- `PRIVATE`: reads return everything, sensitive entries included.
- `CONNECTED`: reads used to build model prompts leave sensitive entries out,
  in the SQL query itself.

`SessionMode.read_filter()` gives the matching `ReadFilter` (`ALL` or
`EXCLUDE_SENSITIVE`). `SessionMode.parse` accepts `private`, `priv`, `p`,
`connected`, `conn` and `c`, in any case; anything else raises
`SessionParseError`. `SessionMode.resolve(arg)` uses `arg` when given, then
the `AZ_SESSION_MODE` environment variable, then `PRIVATE`.

## Installation

```
pip install .
```

## Storing transcripts

```python
from azmem.l0 import L0Entry, L0Store
from azmem.session import ReadFilter

with L0Store("data/memory.sqlite") as store:
    store.append(L0Entry(
        id="t1",
        timestamp="2026-01-01T00:00:00Z",
        content="il fait été chaud",
        source="chat",
        session_id="S",
        sensitivity=False,
    ))
    store.search("ete", 10)            # matches "été"
    store.list_session("S", ReadFilter.EXCLUDE_SENSITIVE)
    store.count()
```

`L1Store`, `L2Store` and `L3Store` open the same file the same way and can be
used as context managers too.

## Model pipeline

Segmentation (L0 to L1) and fact extraction (L1 to L2) work with any
`azmem.llm.Llm`, an abstract class with one method, `generate(request)`.
`azmem.ollama.OllamaClient` talks to an Ollama server over HTTP;
`OllamaClient.from_env()` reads its address from `AZ_OLLAMA_URL` and falls
back to `http://localhost:11434`.

```python
from azmem.extractor import extract_from_segmentation
from azmem.l0 import L0Store
from azmem.l1 import L1Store
from azmem.l2 import L2Store
from azmem.ollama import OllamaClient
from azmem.segmenter import segment_session
from azmem.session import SessionMode

path = "data/memory.sqlite"
llm = OllamaClient.from_env()
mode = SessionMode.CONNECTED

l0, l1, l2 = L0Store(path), L1Store(path), L2Store(path)
segmentation = segment_session(l0, l1, llm, "gemma4:e2b", "S", mode)
drafts = extract_from_segmentation(l1, l2, llm, "gemma4:e2b", segmentation.id, mode)

for fact in l2.list_drafts():
    l2.validate(fact.id, fact.version, "2026-05-26T11:00:00Z")
```

- `segment_session` asks the model for blocks in JSON, drops transcript ids
  it does not know, and marks a block sensitive when any known source is
  sensitive, or when none of its sources is known.
- `extract_from_segmentation` stores every returned fact as a draft (version
  1), skipping facts that name a block that was not in the prompt.

`OllamaClient.embed(model, text)` returns an embedding vector and raises
`BackendError` when the server returns an empty one.

## Errors

Failures raise exceptions:

- `azmem.database.DatabaseError`, and `NotFoundError` when activating an
  unknown page;
- `azmem.llm.LlmError`, with `HttpError`, `DecodeError` and `BackendError`;
- `azmem.segmenter.SegmentError`, with `EmptySessionError` and
  `SegmentParseError`;
- `azmem.extractor.ExtractError`, with `EmptySegmentationError` and
  `ExtractParseError`;
- `azmem.session.SessionParseError` for an unknown mode name.

## What this package does not do

- It has no command-line program and no graphical interface; it is a library.
- It does not capture audio or transcribe speech; transcripts are appended
  as text.
- The database file is not encrypted and no password is asked for.
- Embeddings can be computed but are not stored, and there is no semantic
  search.

## Running the tests

```
pip install .[test]
pytest
```