from pathlib import Path

import pytest

from ossim.models import Process
from ossim.workload_io import load_memory_script, load_workload


def test_load_json(tmp_path: Path):
    p = tmp_path / "w.json"
    p.write_text('[{"pid":1,"name":"editor","arrival":0,"burst":3,"priority":1},'
                 '{"pid":2,"arrival":1,"burst":2}]')
    procs = load_workload(p)
    assert isinstance(procs[0], Process)
    assert procs[0].name == "editor"
    assert procs[1].name == "Process_2"
    assert procs[1].priority == 3
    assert procs[1].arrival == 1


def test_load_csv(tmp_path: Path):
    p = tmp_path / "w.csv"
    p.write_text("pid,name,arrival,burst,priority\n1,A,0,3,1\n2,,1,2,\n")
    procs = load_workload(p)
    assert procs[0].pid == 1
    assert procs[0].remaining == 3
    assert procs[1].priority == 3


def test_invalid_entries_are_reported(tmp_path: Path):
    p = tmp_path / "w.json"
    p.write_text('[{"pid":1,"arrival":0}]')
    with pytest.raises(ValueError, match="Invalid process entry"):
        load_workload(p)

    p.write_text('{"pid":1}')
    with pytest.raises(ValueError, match="must be a list"):
        load_workload(p)

    with pytest.raises(ValueError, match="Unsupported workload format"):
        load_workload(tmp_path / "w.yaml")


def test_load_memory_script_csv(tmp_path: Path):
    p = tmp_path / "m.csv"
    p.write_text("op,pid,label,size\nalloc,1,editor,120\nalloc,2,,64\nfree,1,,\n")
    requests = load_memory_script(p)
    assert [(r.op, r.pid, r.label, r.size) for r in requests] == [
        ("alloc", 1, "editor", 120),
        ("alloc", 2, "P2", 64),
        ("free", 1, "", 0),
    ]


def test_load_memory_script_rejects_unknown_op(tmp_path: Path):
    p = tmp_path / "m.json"
    p.write_text('[{"op":"compact","pid":1}]')
    with pytest.raises(ValueError, match="op must be alloc or free"):
        load_memory_script(p)

    p.write_text('[{"op":"alloc","pid":1}]')
    with pytest.raises(ValueError, match="Invalid memory request"):
        load_memory_script(p)
