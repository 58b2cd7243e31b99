import base64

import pytest

PAYLOAD = bytes(range(256)) * 4
B64 = base64.b64encode(PAYLOAD).decode("ascii")


def in_room(connect, *names, room="lobby"):
    clients = [connect(n) for n in names]
    clients[0].command("join", room=room)
    for c in clients[1:]:
        c.command("join", room=room)
        clients[0].command("approve", args=[c.name])
    for c in clients:
        c.conn.clear()
    return clients


def test_upload_then_download_from_other_session(connect, context):
    alice, bob = in_room(connect, "alice", "bob")
    alice.request(type="FILE_UPLOAD", filename="report.bin", data=B64)

    assert bob.sent == [{"type": "FILE_UPLOAD_ACK", "filename": "report.bin", "sender": "alice"}]
    assert alice.sent == []
    assert (context.store.upload_dir / "report.bin").read_bytes() == PAYLOAD

    # not in any room, still allowed to download
    carol = connect("carol")
    carol.request(type="FILE_DOWNLOAD", filename="report.bin")
    assert carol.conn.last() == {"type": "FILE_DOWNLOAD", "filename": "report.bin", "data": B64}


def test_upload_requires_room(connect, context):
    alice = connect("alice")
    alice.request(type="FILE_UPLOAD", filename="a.txt", data=B64)
    resp = alice.conn.last()
    assert resp["type"] == "FILE_UPLOAD_FAIL"
    assert resp["filename"] == "a.txt"
    assert not context.store.exists("a.txt")


@pytest.mark.parametrize("filename", ["../escape.txt", "sub/dir.txt", "..", ""])
def test_upload_refuses_path_like_names(connect, context, filename):
    (alice,) = in_room(connect, "alice")
    alice.request(type="FILE_UPLOAD", filename=filename, data=B64)
    resp = alice.conn.last()
    assert resp["type"] == "FILE_UPLOAD_FAIL"
    assert resp["message"].startswith("Invalid filename")


def test_upload_bad_base64(connect):
    (alice,) = in_room(connect, "alice")
    alice.request(type="FILE_UPLOAD", filename="a.txt", data="***not base64***")
    assert alice.conn.last() == {
        "type": "FILE_UPLOAD_FAIL", "filename": "a.txt", "message": "Invalid file data",
    }


def test_upload_write_failure_is_reported(connect, context, monkeypatch):
    (alice,) = in_room(connect, "alice")

    def boom(filename, data):
        raise OSError("disk full")

    monkeypatch.setattr(context.store, "save", boom)
    alice.request(type="FILE_UPLOAD", filename="a.txt", data=B64)
    assert alice.conn.last() == {"type": "FILE_UPLOAD_FAIL", "filename": "a.txt", "message": "disk full"}
    # connection keeps working
    alice.command("who")
    assert alice.conn.last()["type"] == "WHO"


def test_size_cap(connect, context, monkeypatch):
    (alice,) = in_room(connect, "alice")
    monkeypatch.setattr(context.files, "max_file_size", 16)
    alice.request(type="FILE_UPLOAD", filename="big.bin", data=B64)
    assert alice.conn.last()["message"] == "File too large"


def test_download_missing(connect):
    alice = connect("alice")
    alice.request(type="FILE_DOWNLOAD", filename="nope.txt")
    assert alice.conn.last() == {
        "type": "FILE_DOWNLOAD_FAIL", "filename": "nope.txt", "message": "File not found",
    }


def test_same_filename_is_shared_across_rooms(connect, context):
    alice = connect("alice")
    bob = connect("bob")
    alice.command("join", room="one")
    bob.command("join", room="two")
    alice.request(type="FILE_UPLOAD", filename="notes.txt", data=base64.b64encode(b"first").decode())
    bob.request(type="FILE_UPLOAD", filename="notes.txt", data=base64.b64encode(b"second").decode())
    assert context.store.load("notes.txt") == b"second"


def test_send_file_to_online_user(connect, context):
    alice, bob = connect("alice"), connect("bob")
    alice.request(type="SEND_FILE", recipient="bob", filename="pic.png", data=B64, folder="inbox")

    assert bob.sent == [{"type": "RECEIVE_FILE", "sender": "alice", "filename": "pic.png", "data": B64}]
    assert alice.sent == [{"type": "SEND_FILE_ACK", "recipient": "bob", "filename": "pic.png"}]
    pending = bob.dispatcher.session.pending_download
    assert (pending.from_user, pending.filename, pending.target_folder) == ("alice", "pic.png", "inbox")
    # nothing persisted server-side
    assert context.store.list_files() == []


def test_send_file_to_offline_user(connect):
    alice = connect("alice")
    alice.request(type="SEND_FILE", recipient="carol", filename="pic.png", data=B64)
    assert alice.sent == [{
        "type": "SEND_FILE_FAIL", "recipient": "carol", "filename": "pic.png",
        "message": "User 'carol' is not online.",
    }]


def test_newer_direct_send_replaces_pending_download(connect):
    alice, bob = connect("alice"), connect("bob")
    alice.request(type="SEND_FILE", recipient="bob", filename="a.txt", data=B64)
    alice.request(type="SEND_FILE", recipient="bob", filename="b.txt", data=B64)
    assert bob.dispatcher.session.pending_download.filename == "b.txt"
    assert len(bob.conn.of_type("RECEIVE_FILE")) == 2


def test_file_requests_need_login(connect):
    anon = connect("anon", login=False)
    anon.request(type="FILE_DOWNLOAD", filename="x")
    anon.request(type="SEND_FILE", recipient="bob", filename="x", data=B64)
    assert [m["type"] for m in anon.sent] == ["ERROR", "ERROR"]
