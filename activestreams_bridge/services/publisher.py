"""
Change-gated publication of active stream facts.
"""
import json

from .topics import detail_topic


class ChangeGatedPublisher:
    """Publishes a fact only when its value differs from the last one delivered.

    The cache is owned by the caller so that it outlives a single poll cycle
    and can be inspected in tests. An entry is only written once both the
    state and the detail message were accepted by the broker, so a failed
    publish is retried on the next cycle.
    """

    def __init__(self, broker, cache=None):
        self.broker = broker
        self.cache = cache if cache is not None else {}

    def is_changed(self, topic: str, value) -> bool:
        if topic not in self.cache:
            return True
        cached = self.cache[topic]
        # True == 1 in Python, a type change is a change
        return type(cached) is not type(value) or cached != value

    def publish(self, topic: str, value, detail) -> bool:
        """Publish value and detail if value changed, returns True if published"""
        if not self.is_changed(topic, value):
            return False

        info_topic = detail_topic(topic)
        try:
            if not self.broker.publish(topic, value):
                print(f"[Publisher] Failed to publish {topic}, will retry next cycle", flush=True)
                return False
            if not self.broker.publish(info_topic, json.dumps(detail)):
                print(f"[Publisher] Failed to publish {info_topic}, will retry next cycle", flush=True)
                return False
        except Exception as e:
            print(f"[Publisher] Error publishing {topic}: {e}", flush=True)
            return False

        self.cache[topic] = value
        print(f"[Publisher] {topic} = {value}", flush=True)
        return True

    def snapshot(self) -> dict:
        return dict(self.cache)
