# fastqueue

Building blocks for a partitioned, replicated message queue: file access
with a cache of open streams, in-memory caches for messages and index pages,
on-disk naming of queue files, trace logging, and the bookkeeping a cluster
controller and its data nodes keep (leader election state, partition
placement, consumer-group balancing and liveness tracking).

It has no dependencies outside the standard library.

## Modules

### Storage

- `fastqueue.lru.LruCache(capacity)`: a thread-safe, bounded least-recently-used
  map. `put` returns the value it displaced, which is either the old value
  for the same key or the evicted entry. `keys_with_prefix` lists the string
  keys that start with a prefix.
- `fastqueue.file_handler.FileHandler(max_open_files=1000)`: positioned reads and
  writes on files. Open `FileStream`s are kept in an `LruCache` under caller
  chosen keys. `write_to_file(key, path, data, pos=-1, flush_data=True)`
  appends when `pos` is -1 and returns the position written at.
  `read_from_file(key, path, size, pos=0)` returns bytes. Both raise
  `FileNotFoundError` for a missing path. Writes made with `flush_data=False`
  are flushed by `flush_output_streams()`. The handler also creates, deletes,
  renames and lists files and directories, and it is a context manager that
  closes every cached stream on exit, which `close_all()` does as well.
- `fastqueue.cache_handler.CacheHandler`: caches messages and index pages.
  Flushed entries live in LRU caches and expire after a time-to-live, and
  expired keys are swept lazily after a number of lookups. Unflushed entries
  are held apart until `clear_unflushed_data_cache()` moves them into the LRU
  caches. `message_cache_key` and `index_page_cache_key` build the keys.
- `fastqueue.path_mapper.QueueSegmentFilePathMapper(log_path, file_extension=".fq")`:
  file keys and paths for queue folders, partition folders, segment and index
  files (zero-padded to 20 digits, optionally compacted), metadata files,
  message location maps and partition offsets files.
- `fastqueue.disk_flusher.DiskFlusher`: writes through a `FileHandler` and can
  cache what it writes, as messages (given each message's `(id, size)`) or
  as an index page, described by a `CacheKeyInfo`. It counts bytes not yet
  flushed. `flush_to_disk_periodically(should_terminate)` runs until the
  given `threading.Event` is set. It flushes when the interval passes or when
  the pending bytes reach the configured limit.
- `fastqueue.disk_reader.DiskReader`: looks messages and index pages up in the
  cache and reads byte ranges from disk.
- `fastqueue.logger.Logger(source_name, file_handler, trace_log_path)`: writes
  `time | LEVEL | message` lines to stdout and appends them to
  `<trace_log_path>/<source_name>.txt`. The levels are in `LogTraceType`.

### Cluster coordination

- `fastqueue.consensus`: `ElectionState` holds one controller's term, vote
  and role, which is a `NodeState`. Its methods are `begin_election`,
  `handle_request_vote` (it returns a `VoteResponse`), `handle_append_entries`,
  `finish_election`, `observe_term`, `heartbeat_timed_out` and
  `step_down_to_follower`. The module also has `quorum_size(n)` and
  `get_largest_replicated_index(indexes, half_nodes_count)`.
- `fastqueue.assignment`: `NodeHeartbeats` records when data nodes were last
  heard from and reports expired nodes. `PartitionAssigner` places partition
  replicas on the least loaded eligible node and picks partition leaders
  among the live owners. `assign_new_queue` raises `QueueAlreadyExistsError`
  or `TooFewAvailableNodesError`.
- `fastqueue.consumer_groups.ConsumerGroupAssigner`: gives a new consumer the
  unheld partitions of its group and takes partitions from the busiest
  consumers when that is below its fair share. It can also release an
  expired consumer's partitions.
- `fastqueue.membership`: `ConsumerTracker` tracks consumer heartbeats and
  expiry. `next_leader_id(controller_ids, leader_id)` picks the next
  controller round-robin.
- `fastqueue.lag_tracker.FollowerLagTracker`: records when followers last
  fetched each partition and reports the ones that have gone quiet for too
  long. The key format is given by `follower_heartbeat_key`.

## Example

```python
from fastqueue.file_handler import FileHandler
from fastqueue.path_mapper import QueueSegmentFilePathMapper

mapper = QueueSegmentFilePathMapper(log_path="/tmp/fq")
path = mapper.get_file_path("orders", 1, 0, False, False)
key = mapper.get_file_key("orders", 1, 0, False, False)

with FileHandler() as files:
    files.create_directory(mapper.get_partition_folder_path("orders", 0))
    files.create_new_file(path, b"", key, True)
    files.write_to_file(key, path, b"hello", -1, True)
    print(files.read_from_file(key, path, 5, 0))  # b'hello'
```

## What this package does not do

This is a library of parts, not a running queue. It has no server, no network
transport or wire protocol, and no command-line program. It does not define
the binary layout of messages, segments or index pages, and it keeps no
replicated log of cluster changes. The election, placement and consumer-group
classes hold and update state. Sending requests between nodes, running the
timers and persisting that state are left to the caller.

## Running the tests

```
pip install -e .[test]
pytest
```