import threading
from concurrent.futures import ThreadPoolExecutor

from translate_json.cache import ReadWriteLock, TranslationCache

WAIT_TIMEOUT = 5


class TestTranslationCache:

    def test_missing_value_returns_none(self):
        cache = TranslationCache()
        assert cache.get("hello") is None
        assert "hello" not in cache
        assert len(cache) == 0

    def test_put_then_get(self):
        cache = TranslationCache()
        cache.put("hello", "world")
        assert cache.get("hello") == "world"
        assert "hello" in cache
        assert len(cache) == 1

    def test_empty_key_and_empty_translation_are_valid(self):
        cache = TranslationCache()
        cache.put("", "mmm")
        cache.put("object:1091", "")
        assert cache.get("") == "mmm"
        assert cache.get("object:1091") == ""

    def test_later_put_overwrites(self):
        cache = TranslationCache()
        cache.put("hello", "world")
        cache.put("hello", "welt")
        assert cache.get("hello") == "welt"
        assert len(cache) == 1

    def test_snapshot_is_a_copy(self):
        cache = TranslationCache()
        cache.put("a", "b")
        snapshot = cache.snapshot()
        snapshot["c"] = "d"
        assert cache.snapshot() == {"a": "b"}

    def test_concurrent_readers_and_writers(self):
        cache = TranslationCache()

        def work(i):
            key = f"value-{i % 50}"
            cache.put(key, key.upper())
            assert cache.get(key) == key.upper()

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(work, range(1000)))

        assert len(cache) == 50
        assert cache.get("value-7") == "VALUE-7"


class TestReadWriteLock:

    def test_readers_do_not_block_each_other(self):
        lock = ReadWriteLock()
        reader_inside = threading.Event()
        release_reader = threading.Event()

        def reader():
            with lock.read_locked():
                reader_inside.set()
                release_reader.wait(WAIT_TIMEOUT)

        thread = threading.Thread(target=reader)
        thread.start()
        try:
            assert reader_inside.wait(WAIT_TIMEOUT)
            acquired = []

            def second_reader():
                with lock.read_locked():
                    acquired.append(True)

            other = threading.Thread(target=second_reader)
            other.start()
            other.join(WAIT_TIMEOUT)
            assert acquired == [True]
        finally:
            release_reader.set()
            thread.join(WAIT_TIMEOUT)

    def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        reader_inside = threading.Event()
        release_reader = threading.Event()
        writer_done = threading.Event()

        def reader():
            with lock.read_locked():
                reader_inside.set()
                release_reader.wait(WAIT_TIMEOUT)

        def writer():
            with lock.write_locked():
                writer_done.set()

        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        assert reader_inside.wait(WAIT_TIMEOUT)

        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        try:
            assert not writer_done.wait(0.2)
        finally:
            release_reader.set()
        assert writer_done.wait(WAIT_TIMEOUT)

        reader_thread.join(WAIT_TIMEOUT)
        writer_thread.join(WAIT_TIMEOUT)

    def test_readers_wait_for_writer(self):
        lock = ReadWriteLock()
        writer_inside = threading.Event()
        release_writer = threading.Event()
        reader_done = threading.Event()

        def writer():
            with lock.write_locked():
                writer_inside.set()
                release_writer.wait(WAIT_TIMEOUT)

        def reader():
            with lock.read_locked():
                reader_done.set()

        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        assert writer_inside.wait(WAIT_TIMEOUT)

        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        try:
            assert not reader_done.wait(0.2)
        finally:
            release_writer.set()
        assert reader_done.wait(WAIT_TIMEOUT)

        writer_thread.join(WAIT_TIMEOUT)
        reader_thread.join(WAIT_TIMEOUT)

    def test_lock_is_released_on_error(self):
        lock = ReadWriteLock()
        try:
            with lock.write_locked():
                raise ValueError("boom")
        except ValueError:
            pass

        with lock.write_locked():
            pass
        with lock.read_locked():
            pass
