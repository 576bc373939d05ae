import queue
import threading

import pytest

from corex.pubsub import Broker, Publisher, Subscriber, Topic


@pytest.fixture
def broker():
    b = Broker(8)
    runner = threading.Thread(target=b.run, daemon=True)
    runner.start()
    yield b
    b.stop()
    runner.join(2.0)


def _collector(sink, name):
    return lambda topic: sink.put((name, topic))


def test_publisher_sets_sender(broker):
    sink = queue.Queue()
    sub = Subscriber("s1", broker)
    sub.subscribe("t1", _collector(sink, "s1"))
    Publisher("p1", broker).publish(Topic(id="t1", msg="hello xxx"))
    name, topic = sink.get(timeout=2.0)
    assert name == "s1"
    assert topic == Topic(id="t1", msg="hello xxx", sender="p1")


def test_every_subscriber_of_topic_receives(broker):
    sink = queue.Queue()
    s1 = Subscriber("s1", broker)
    s2 = Subscriber("s2", broker)
    s3 = Subscriber("s3", broker)
    s1.subscribe("t2", _collector(sink, "s1"))
    s2.subscribe("t2", _collector(sink, "s2"))
    s3.subscribe("t3", _collector(sink, "s3"))
    Publisher("p2", broker).publish(Topic(id="t2", msg="p2 hello xxx"))
    received = {sink.get(timeout=2.0)[0] for _ in range(2)}
    assert received == {"s1", "s2"}
    with pytest.raises(queue.Empty):
        sink.get(timeout=0.1)


def test_unsubscribed_topic_is_not_delivered(broker):
    sink = queue.Queue()
    sub = Subscriber("s1", broker)
    sub.subscribe("t1", _collector(sink, "s1"))
    sub.subscribe("t2", _collector(sink, "s1"))
    sub.unsubscribe("t2")
    pub = Publisher("p1", broker)
    pub.publish(Topic(id="t2", msg="hello again xxx"))
    pub.publish(Topic(id="t1", msg="hello xxx"))
    _, topic = sink.get(timeout=2.0)
    assert topic.id == "t1"
    assert topic.msg == "hello xxx"


def test_topic_without_subscribers_is_dropped(broker):
    sink = queue.Queue()
    sub = Subscriber("s1", broker)
    sub.subscribe("t1", _collector(sink, "s1"))
    pub = Publisher("p1", broker)
    pub.publish(Topic(id="nobody"))
    pub.publish(Topic(id="t1", msg="after"))
    _, topic = sink.get(timeout=2.0)
    assert topic.msg == "after"


def test_messages_arrive_in_order(broker):
    sink = queue.Queue()
    sub = Subscriber("s1", broker)
    sub.subscribe("t1", _collector(sink, "s1"))
    pub = Publisher("p1", broker)
    msgs = [f"m{i}" for i in range(5)]
    for msg in msgs:
        pub.publish(Topic(id="t1", msg=msg))
    got = [sink.get(timeout=2.0)[1].msg for _ in msgs]
    assert got == msgs


def test_broker_unsubscribe_by_name(broker):
    sink = queue.Queue()
    sub = Subscriber("s1", broker)
    sub.subscribe("t1", _collector(sink, "s1"))
    broker.unsubscribe("t1", sub)
    other = Subscriber("s2", broker)
    other.subscribe("t1", _collector(sink, "s2"))
    Publisher("p1", broker).publish(Topic(id="t1"))
    assert sink.get(timeout=2.0)[0] == "s2"


def test_stop_ends_run():
    b = Broker(0)
    runner = threading.Thread(target=b.run, daemon=True)
    runner.start()
    sub = Subscriber("s1", b)
    sub.subscribe("t1", lambda topic: None)
    b.stop()
    runner.join(2.0)
    assert not runner.is_alive()