"""
选词调频测试
"""
import pytest

from fireime.engine import Candidate, EventBus, Signal, LookupSession, LexiconStore, EngineConfig


class TestPromote:
    """调频后首选变化"""

    def test_promoted_candidate_comes_first(self, make_session):
        session = make_session("pinyin", 5)
        assert session.lookup("wo").candidates[0].text == "我"

        assert session.promote("wo", Candidate(code="wo", text="窝", type="py")) is True

        candidates, _ = session.lookup("wo")
        assert candidates[0] == Candidate(code="wo", text="窝", type="py")
        assert [c.text for c in candidates].count("窝") == 1

    def test_round_trip_new_text(self, make_session):
        session = make_session("wubi", 5)
        assert session.promote("b", Candidate(code="b", text="子"))
        first = session.lookup("b").candidates[0]
        assert (first.code, first.text) == ("b", "子")

    def test_new_id_below_minimum(self, make_session, db_path, rows_of):
        session = make_session("wubi", 5)
        session.promote("a", Candidate(code="a", text="戈"))
        session.promote("a", Candidate(code="a", text="式"))
        rows = rows_of(db_path, "wb_dict")
        assert rows[0] == (-1, "a", "式")
        assert rows[1] == (0, "a", "戈")
        assert [c.text for c in session.lookup("a").candidates[:3]] == ["式", "戈", "工"]

    def test_unified_row_fields(self, make_session, db_path, rows_of):
        session = make_session("wubiPinyin", 5)
        assert session.promote("wo", Candidate(code="wo", text="窝", type="py"))
        assert rows_of(db_path, "wb_py_dict")[0] == (0, "wo", "窝", "wb", "wo")

        first = session.lookup("wo").candidates[0]
        assert (first.code, first.text, first.type) == ("wo", "窝", "wb")

    def test_empty_table(self, make_session, db_factory, rows_of):
        path = db_factory("empty.sqlite")
        session = make_session("pinyin", 5, path=path)
        assert session.promote("ni", Candidate(code="ni", text="你", type="py"))
        assert rows_of(path, "py_dict") == [(0, "ni", "你")]
        assert session.lookup("ni").candidates == [Candidate(code="ni", text="你", type="py")]

    def test_promote_clears_cache(self, make_session):
        session = make_session("pinyin", 5)
        session.lookup("wo")
        session.promote("wo", Candidate(code="wo", text="窝", type="py"))
        assert len(session.cache) == 0
        assert session.get_stats()['promotions'] == 1


class TestPromoteFailure:
    """调频失败只返回 False，查询不受影响"""

    def test_rejected_insert(self, make_session, db_path):
        import sqlite3
        db = sqlite3.connect(db_path)
        db.execute(
            "create trigger reject_py before insert on py_dict "
            "begin select raise(abort, 'read only'); end"
        )
        db.commit()
        db.close()

        session = make_session("pinyin", 5)
        before = session.lookup("wo")
        assert session.promote("wo", Candidate(code="wo", text="窝", type="py")) is False
        assert session.get_stats()['promotion_failures'] == 1

        session.cache.clear()
        after = session.lookup("wo")
        assert after.candidates == before.candidates

    def test_closed_store(self, make_session):
        session = make_session("wubi", 5)
        session.close()
        assert session.promote("a", Candidate(code="a", text="戈")) is False

    @pytest.mark.parametrize("code,text", [("", "戈"), ("a", "")])
    def test_empty_arguments(self, make_session, code, text):
        session = make_session("wubi", 5)
        assert session.promote(code, Candidate(code=code, text=text)) is False


class TestSelect:
    """候选选中事件"""

    def test_select_emits_and_promotes(self, db_path):
        events = EventBus()
        received = []
        events.on(Signal.CANDIDATE_SELECTED, received.append)

        config = EngineConfig(code_mode="pinyin", db_path=db_path)
        with LookupSession(LexiconStore(db_path), config, events) as session:
            candidate = Candidate(code="wo", text="窝", type="py")
            assert session.select("wo", candidate) is True
            assert session.lookup("wo").candidates[0].text == "窝"

        assert received == [{"code": "wo", "candidate": candidate}]

    def test_select_without_learning(self, make_session):
        session = make_session("pinyin", 5)
        assert session.select("wo", Candidate(code="wo", text="窝", type="py"), learn=False) is False
        assert session.lookup("wo").candidates[0].text == "我"

    def test_list_updated_event(self, make_session):
        session = make_session("pinyin", 5)
        received = []
        session.events.on(Signal.CANDIDATE_LIST_UPDATED, received.append)
        result = session.lookup("wo")
        assert received[0]["code"] == "wo"
        assert received[0]["result"] is result

    def test_handler_error_does_not_break_lookup(self, make_session):
        session = make_session("pinyin", 5)

        def broken(payload):
            raise RuntimeError("boom")

        session.events.on(Signal.CANDIDATE_LIST_UPDATED, broken)
        assert session.lookup("wo").candidates[0].text == "我"
