# corex

Small, dependable pieces for writing concurrent Python services. Everything is
pure Python on top of threads and the standard library; there are no required
dependencies.

## What is inside

| Module | Purpose |
| --- | --- |
| `corex.containers` | `Heap` ordered by a `less(x, y)` predicate, FIFO `Queue`, and a `Set` with `has_all` / `has_any` |
| `corex.clock` | `RealClock`, `Timer` and `Ticker`, so that time can be injected into code |
| `corex.workqueue` | Thread-safe unbounded `WorkQueue` and bounded hand-off `ChannelQueue`; `read()` raises `QueueStopped` once stopped and drained |
| `corex.group` | Cancellable `Context` with optional deadline, and `Group`, `ErrGroup`, `CtrlGroup` for running functions on threads |
| `corex.backoff` | `Backoff` parameters, `jitter`, `exponential_backoff` (raises `WaitTimeout`), `ExponentialBackoffManager` and `JitteredBackoffManager` |
| `corex.retry` | `retry_on_error` and `retry_on_condition` |
| `corex.poll` | `until`, `non_sliding_until`, `jitter_until`, `backoff_until`, `forever`, `poller`, `wait_for`, `poll`, `poll_immediate` and their infinite / until variants |
| `corex.bloom` | In-memory `BitSet`, `BloomFilter`, and `sum64` (64-bit MurmurHash3) |
| `corex.cron` | Heap-based `Cron` scheduler with `every`, `every_at`, `once` and `at` schedules |
| `corex.timewheel` | `TimeWheel` scheduler built on fixed ticks and buckets |
| `corex.pubsub` | In-process `Broker`, `Subscriber`, `Publisher` and `Topic` |
| `corex.trace` | `Trace` with steps, nested traces and threshold-based logging |
| `corex.mapreduce` | Concurrent `MapReduce` pipeline and `from_map_reducer` |
| `corex.controller` | `Controller`: fan items of an iterable out to a pool of worker threads |
| `corex.redisbitset` | `RedisBitSet`, a bloom filter bit set stored in a Redis string |
| `corex.redislock` | `RedisLock`, a distributed lock held as a Redis key with an expiry |

Times and durations are plain floats in seconds throughout.

## Installation

```
pip install .
```

`RedisBitSet` and `RedisLock` take a ready-made client object and call its
`eval`, `set` and `delete` methods the way the `redis` client library offers
them. That library is not installed with this package; install it yourself if
you use these two classes.

## Examples

### Containers

```python
from corex.containers import Heap, Set

heap = Heap([3, 1, 2], lambda x, y: x < y)
heap.push(0)
print(heap.pop(), len(heap))      # 0 3

names = Set("a", "b")
names.insert("c")
print(names.has_all("a", "c"), names.has_any("x", "b"))
```

`Heap.pop`, `Heap.peek`, `Queue.pop`, `Queue.front` and `Queue.back` raise
`IndexError` on an empty container.

### Bloom filter

```python
from corex.bloom import BloomFilter

bloom = BloomFilter(bits=1 << 16, maps=14)
bloom.add(b"key1")
print(bloom.exists(b"key1"), bloom.exists(b"key2"))
```

With `maps` left at 0 the filter uses 14 hash functions. Empty data is never
added and never reported as present. For a filter shared between processes,
pass a `RedisBitSet` as `bitset`:

```python
import redis
from corex.bloom import BloomFilter
from corex.redisbitset import RedisBitSet

client = redis.Redis(host="localhost", port=6379)
shared = BloomFilter(bits=1 << 16, bitset=RedisBitSet(client, "demo-bloom"))
```

### Retrying and polling

```python
from corex.backoff import Backoff
from corex.poll import poll_immediate
from corex.retry import retry_on_error

def fetch():
    return "data"

print(retry_on_error(Backoff(duration=0.1, factor=2.0, steps=5), fetch))

ready = iter([False, False, True])
poll_immediate(0.05, 1.0, lambda: next(ready))   # raises WaitTimeout if never true
```

### Running work on threads

```python
from corex.group import ErrGroup

group = ErrGroup(None)
for url in ("a", "b", "c"):
    group.go(lambda ctx, url=url: print(url))
group.wait()   # re-raises the first exception, if any
```

### Map-reduce and controller

```python
from corex.controller import Controller
from corex.mapreduce import MapReduce

total = (
    MapReduce(workers=4)
    .source(lambda writer: [writer.write(i) for i in range(1, 101)])
    .map(lambda x: x * x)
    .reduce(sum)
    .run()
)
print(total)

Controller(workers=4).source(range(10)).handle(print).run()
```

### Cron

```python
import logging
import threading
from corex.cron import Cron, SimpleJob, Task, every

cron = Cron(logging.getLogger("cron"))
cron.add(Task(SimpleJob("heartbeat", lambda: print("tick")), every(5)))
threading.Thread(target=cron.run, daemon=True).start()
# ...
cron.stop()
```

`TimeWheel(interval, slots, logger)` accepts the same `Task` objects.

### Pub/sub

```python
import threading
from corex.pubsub import Broker, Publisher, Subscriber, Topic

broker = Broker(8)
threading.Thread(target=broker.run, daemon=True).start()
subscriber = Subscriber("s1", broker)
subscriber.subscribe("t1", lambda topic: print(topic))
Publisher("p1", broker).publish(Topic(id="t1", msg="hello"))
```

### Tracing

```python
import logging
from corex.trace import Field, Trace

trace = Trace("request", logging.getLogger("trace"), Field("user", "demo"))
trace.step("parsed")
trace.step("stored")
trace.log_if_long(0.5)   # logs only if the trace took at least half a second
```

### Distributed lock

```python
import redis
from corex.redislock import RedisLock

client = redis.Redis(host="localhost", port=6379)
with RedisLock(client, "jobs-lock", "worker-1", expiration=10, retry_interval=1):
    ...
```

## What it does not do

There is no rate limiter in this package, and nothing here talks to service
registries or coordination stores other than Redis: no service discovery, no
leader election, and no locks on other backends. There are no command-line
tools; everything is a library used from Python code.

## Running the tests

```
pip install .[test]
pytest
```