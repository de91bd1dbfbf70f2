import pytest

from memsim.cache import Cache
from memsim.cache_base import AccessType, CacheBase
from memsim.request import MemoryLevel, MemRequest, RequestType


class Memory:
    def __init__(self, accept=True):
        self.accept = accept
        self.received = []

    def access(self, req):
        if not self.accept:
            return False
        self.received.append(req)
        return True


def tick(*caches, cycles=10):
    for _ in range(cycles):
        for cache in caches:
            cache.run_a_cycle()


def make_l1(memory, done, num_sets=4, assoc=2, latency=2):
    cache = Cache("L1", MemoryLevel.L1, num_sets, assoc, 64, latency)
    cache.configure_neighbors(None, None, None, memory)
    cache.done_func = done.append
    return cache


def test_read_miss_then_fill_then_hit():
    mem, done = Memory(), []
    l1 = make_l1(mem, done)
    req = MemRequest(0x1000, RequestType.DFETCH)
    assert l1.access(req)
    tick(l1)
    assert mem.received == [req]
    assert l1.num_misses == 1
    assert done == []

    assert l1.fill(req)
    tick(l1)
    assert done == [req]

    hit = MemRequest(0x1000, RequestType.DFETCH)
    l1.access(hit)
    tick(l1)
    assert done == [req, hit]
    assert mem.received == [req]
    assert l1.num_hits == 1
    assert l1.num_accesses == 2


def test_hit_respects_latency():
    done = []
    l1 = make_l1(Memory(), done, latency=3)
    CacheBase.access(l1, 0x1000, AccessType.READ, True)
    req = MemRequest(0x1000, RequestType.DFETCH)
    l1.access(req)
    tick(l1, cycles=l1.latency)
    assert done == []
    tick(l1, cycles=1)
    assert done == [req]
    assert req.rdy_cycle == l1.latency


def test_memory_back_pressure_keeps_request_queued():
    mem, done = Memory(accept=False), []
    l1 = make_l1(mem, done)
    req = MemRequest(0x2000, RequestType.DFETCH)
    l1.access(req)
    tick(l1)
    assert mem.received == []
    assert req in l1.out_queue
    mem.accept = True
    tick(l1, cycles=1)
    assert mem.received == [req]
    assert l1.out_queue.empty()


def test_store_miss_becomes_dirty_read():
    mem, done = Memory(), []
    l1 = make_l1(mem, done)
    req = MemRequest(0x3000, RequestType.DSTORE)
    l1.access(req)
    tick(l1)
    assert mem.received == [req]
    assert req.req_type == RequestType.DFETCH
    assert req.dirty is True
    assert l1.num_writes == 1
    l1.fill(req)
    tick(l1)
    assert done == [req]
    assert CacheBase.invalidate(l1, 0x3000) == (True, True)


@pytest.mark.parametrize(
    "level, expected_dirty",
    [(MemoryLevel.L1, True), (MemoryLevel.L2, False)],
)
def test_dirty_fill_marks_line_dirty_only_at_l1(level, expected_dirty):
    done = []
    cache = Cache("C", level, 4, 2, 64, 1)
    cache.configure_neighbors(None, None, None, Memory())
    cache.done_func = done.append
    req = MemRequest(0x40, RequestType.DFETCH, dirty=True)
    cache.fill(req)
    tick(cache)
    assert done == [req]
    assert CacheBase.invalidate(cache, 0x40) == (True, expected_dirty)
    assert cache.num_accesses == 0


def test_dirty_eviction_writes_back_to_memory():
    mem, done = Memory(), []
    l1 = make_l1(mem, done, num_sets=1, assoc=1)
    l1.access(MemRequest(0x40, RequestType.DSTORE))
    tick(l1)
    l1.access(MemRequest(0x80, RequestType.DFETCH))
    tick(l1)
    writebacks = [r for r in mem.received if r.req_type == RequestType.WB]
    assert [r.addr for r in writebacks] == [0x40]
    assert all(r.dirty for r in writebacks)
    assert l1.num_writebacks == 1
    assert l1.wb_queue.empty()


def test_missing_next_level_raises():
    cache = Cache("L1", MemoryLevel.L1, 1, 1, 64, 0)
    assert cache.access(MemRequest(0x40, RequestType.DFETCH)) is True
    with pytest.raises(RuntimeError):
        tick(cache, cycles=5)
    assert cache.num_misses == 1
    assert cache.num_accesses == 1


def test_l2_eviction_back_invalidates_upper_levels():
    mem = Memory()
    l1i = Cache("L1I", MemoryLevel.L1, 1, 1, 64, 1)
    l1d = Cache("L1D", MemoryLevel.L1, 1, 1, 64, 1)
    l2 = Cache("L2", MemoryLevel.L2, 1, 1, 64, 1)
    l2.configure_neighbors(l1i, l1d, None, mem)
    l1i.configure_neighbors(None, None, l2, None)
    l1d.configure_neighbors(None, None, l2, None)

    CacheBase.access(l1d, 0x40, AccessType.WRITE, True)
    CacheBase.access(l1i, 0x40, AccessType.READ, True)
    CacheBase.access(l2, 0x40, AccessType.READ, True)

    l2.access(MemRequest(0x80, RequestType.DFETCH))
    tick(l2)

    assert l1d.num_backinvals == 1
    assert l1d.num_writebacks_backinval == 1
    assert l1i.num_backinvals == 1
    assert l1i.num_writebacks_backinval == 0
    assert CacheBase.invalidate(l1d, 0x40) == (False, False)
    assert CacheBase.invalidate(l1i, 0x40) == (False, False)
    writebacks = [r for r in mem.received if r.req_type == RequestType.WB]
    assert [r.addr for r in writebacks] == [0x40]
    assert "number of back invalidations: 1" in l1d.format_stats()
    assert "number of writebacks due to back invalidations: 1" in l1d.format_stats()


def test_l2_hit_forwards_to_matching_l1():
    mem = Memory()
    idone, ddone = [], []
    l1i = Cache("L1I", MemoryLevel.L1, 4, 2, 64, 1)
    l1d = Cache("L1D", MemoryLevel.L1, 4, 2, 64, 1)
    l2 = Cache("L2", MemoryLevel.L2, 8, 4, 64, 2)
    l2.configure_neighbors(l1i, l1d, None, mem)
    l1i.configure_neighbors(None, None, l2, None)
    l1d.configure_neighbors(None, None, l2, None)
    l1i.done_func = idone.append
    l1d.done_func = ddone.append

    CacheBase.access(l2, 0x40, AccessType.READ, True)
    ireq = MemRequest(0x40, RequestType.IFETCH)
    dreq = MemRequest(0x40, RequestType.DFETCH)
    l2.access(ireq)
    l2.access(dreq)
    tick(l2, l1i, l1d)

    assert idone == [ireq]
    assert ddone == [dreq]
    assert mem.received == []
    assert CacheBase.invalidate(l1i, 0x40)[0] is True
    assert CacheBase.invalidate(l1d, 0x40)[0] is True


def test_l1_writeback_installs_dirty_line_in_l2():
    mem, done = Memory(), []
    l1d = Cache("L1D", MemoryLevel.L1, 1, 1, 64, 1)
    l2 = Cache("L2", MemoryLevel.L2, 4, 4, 64, 1)
    l2.configure_neighbors(None, l1d, None, mem)
    l1d.configure_neighbors(None, None, l2, None)
    l1d.done_func = done.append

    CacheBase.access(l1d, 0x40, AccessType.WRITE, True)
    l1d.access(MemRequest(0x80, RequestType.DFETCH))
    tick(l1d, l2)

    assert l1d.num_writebacks == 1
    assert [r.addr for r in mem.received if r.req_type == RequestType.WB] == []
    assert CacheBase.invalidate(l2, 0x40) == (True, True)


def test_format_stats_extends_base_report():
    l1 = make_l1(Memory(), [])
    text = l1.format_stats()
    assert text.startswith(CacheBase.format_stats(l1))
    assert text.endswith("number of writebacks due to back invalidations: 0\n")