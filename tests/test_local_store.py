from fittings_portal.database.local_store import LocalStore
from fittings_portal.database.local_store_redis import RedisLocalStore


class FakeRedis:
    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)

    def scan_iter(self, match=None):
        prefix = (match or "*").rstrip("*")
        return [k for k in list(self.data) if k.startswith(prefix)]

    def ping(self):
        return True


def test_memory_store_get_set_remove():
    store = LocalStore()
    assert store.get_item("catalog-products") is None
    store.set_item("catalog-products", "[]")
    assert store.get_item("catalog-products") == "[]"
    store.remove_item("catalog-products")
    assert store.get_item("catalog-products") is None


def test_directory_store_survives_restart(tmp_path):
    LocalStore(tmp_path).set_item("site-visitors", '[{"id": "1"}]')

    reopened = LocalStore(tmp_path)

    assert reopened.get_item("site-visitors") == '[{"id": "1"}]'
    assert not list(tmp_path.glob("*.tmp"))


def test_directory_store_clear(tmp_path):
    store = LocalStore(tmp_path)
    store.set_item("a", "1")
    store.set_item("b", "2")

    store.clear()

    assert LocalStore(tmp_path).get_item("a") is None
    assert list(tmp_path.glob("*.json")) == []


def test_redis_store_prefixes_keys():
    fake = FakeRedis()
    store = RedisLocalStore(url="redis://unused", client=fake)

    store.set_item("admin-auth", "{}")
    other = RedisLocalStore(url="redis://unused", prefix="other:", client=fake)
    other.set_item("admin-auth", "x")

    assert fake.data["portal:admin-auth"] == "{}"
    store.clear()
    assert "portal:admin-auth" not in fake.data
    assert fake.data["other:admin-auth"] == "x"
    assert store.ping() is True
