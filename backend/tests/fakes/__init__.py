from .fake_clients import FakeClock, FakePushDispatcher, FakeSocketServer

__all__ = ["FakeClock", "FakePushDispatcher", "FakeSocketServer"]
