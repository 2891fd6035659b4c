"""Tests for record statement planning, including runs against SQLite."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

import pytest
from pydantic import BaseModel
from sqlalchemy.engine import Connection

from relmap import (
    delete_for,
    insert_for,
    junction_count,
    junction_delete,
    junction_insert,
    relation_select,
    select_for,
    set_auto_increment,
    update_for,
)
from relmap.exceptions import (
    MissingPrimaryKeyError,
    RecordTypeMismatchError,
    RelationError,
    StatementError,
    ValueConversionError,
)
from relmap.query import Expandable
from relmap.schema import Column, map_to_record


class Writer(BaseModel):
    id: int = 0
    name: str = ""
    email: str = ""
    articles: Annotated[list[Article], Column("one_to_many")] = []


class Article(BaseModel):
    id: int = 0
    title: str = ""
    writer: Annotated[Writer | None, Column("many_to_one")] = None
    labels: Annotated[list[Label], Column("many_to_many")] = []


class Label(BaseModel):
    id: int = 0
    text: str = ""


class Stamp(BaseModel):
    id: int = 0
    note: str = ""
    created: Annotated[datetime | None, Column("auto_now_add")] = None
    updated: Annotated[datetime | None, Column("auto_now")] = None


class Course(BaseModel):
    id: int = 0
    students: Annotated[list[Student], Column("many_to_many")] = []

    @classmethod
    def __through__(cls, field: str) -> tuple[type, str, str]:
        return Enrollment, "course", "student"


class Student(BaseModel):
    id: int = 0


class Enrollment(BaseModel):
    __tablename__ = "enrollment"

    id: int = 0
    course: Annotated[Course | None, Column("many_to_one")] = None
    student: Annotated[Student | None, Column("many_to_one")] = None


class Keyless(BaseModel):
    note: str = ""


NOW = datetime(2024, 1, 2, 3, 4, 5, 678)
MOMENT = datetime(2024, 1, 2, 3, 4, 5)


def mysql(statement: Expandable) -> tuple[str, list[object]]:
    return statement.expand("mysql")


# -- Single-table statements ---------------------------------------------------


def test_insert_skips_auto_increment():
    assert mysql(insert_for(Writer(id=7, name="Ann", email="a@x"))) == (
        "INSERT INTO `Writer` (`name`,`email`) VALUES (?,?)",
        ["Ann", "a@x"],
    )


def test_batch_insert():
    sql, args = mysql(insert_for(Label(text="a"), Label(text="b")))
    assert sql == "INSERT INTO `Label` (`text`) VALUES (?),(?)"
    assert args == ["a", "b"]


def test_insert_sets_timestamps():
    stamp = Stamp(note="n")
    assert mysql(insert_for(stamp, now=NOW)) == (
        "INSERT INTO `Stamp` (`note`,`created`,`updated`) VALUES (?,?,?)",
        ["n", MOMENT, MOMENT],
    )
    assert stamp.created == stamp.updated == MOMENT


def test_insert_stores_foreign_key():
    article = Article(title="t", writer=Writer(id=4))
    assert mysql(insert_for(article)) == (
        "INSERT INTO `Article` (`title`,`Writerid`) VALUES (?,?)",
        ["t", 4],
    )


def test_empty_batch_insert():
    with pytest.raises(StatementError, match="create: empty batch insert"):
        insert_for()


def test_set_auto_increment():
    label = Label()
    set_auto_increment(label, 12)
    assert label.id == 12

    with pytest.raises(MissingPrimaryKeyError, match="no auto_increment"):
        set_auto_increment(Keyless(), 1)


def test_select_by_primary_key():
    assert mysql(select_for(Writer(id=3))) == (
        "SELECT `name`,`email` FROM `Writer` WHERE (`id`=?)",
        [3],
    )
    assert mysql(select_for(Writer(id=3), "email")) == (
        "SELECT `email` FROM `Writer` WHERE (`id`=?)",
        [3],
    )


def test_update_refreshes_auto_now():
    stamp = Stamp(id=9, note="x", created=datetime(2020, 1, 1))
    assert mysql(update_for(stamp, now=NOW)) == (
        "UPDATE `Stamp` SET `note`=?,`updated`=? WHERE (`id`=?)",
        ["x", MOMENT, 9],
    )
    assert stamp.updated == MOMENT
    assert stamp.created == datetime(2020, 1, 1)


def test_update_selected_columns():
    writer = Writer(id=1, name="n", email="e")
    assert mysql(update_for(writer, "-", "name")) == (
        "UPDATE `Writer` SET `email`=? WHERE (`id`=?)",
        ["e", 1],
    )


def test_delete_by_primary_key():
    assert mysql(delete_for(Writer(id=5))) == (
        "DELETE FROM `Writer` WHERE (`id`=?)",
        [5],
    )


@pytest.mark.parametrize("build", [select_for, update_for, delete_for])
def test_statements_need_primary_key(build):
    with pytest.raises(MissingPrimaryKeyError, match="no primary_key: Keyless"):
        build(Keyless())


# -- Relations -----------------------------------------------------------------


def test_relation_select_to_one():
    article = Article(writer=Writer(id=5))
    assert mysql(relation_select(article, "writer")) == (
        "SELECT `name`,`email` FROM `Writer` WHERE (`id`=?)",
        [5],
    )


def test_relation_select_to_one_absent():
    with pytest.raises(ValueConversionError, match="select relation nil"):
        relation_select(Article(), "writer")


def test_relation_select_one_to_many():
    assert mysql(relation_select(Writer(id=2), "articles", "title")) == (
        "SELECT `title` FROM `Article` WHERE (`Writerid`=?)",
        [2],
    )


def test_relation_select_many_to_many():
    assert mysql(relation_select(Article(id=8), "labels")) == (
        "SELECT `id`,`text` FROM `Label` WHERE (`id` IN "
        "(SELECT `Labelid` FROM `ArticleLabel` WHERE (`Articleid`=?)))",
        [8],
    )


def test_relation_select_plain_field():
    with pytest.raises(RelationError, match="no relation"):
        relation_select(Article(), "title")


def test_junction_statements():
    article = Article(id=1)
    first, second = Label(id=10), Label(id=20)

    assert mysql(junction_insert(article, "labels", first, second)) == (
        "INSERT INTO `ArticleLabel` (`Articleid`,`Labelid`) VALUES (?,?),(?,?)",
        [1, 10, 1, 20],
    )
    assert mysql(junction_count(article, "labels", first)) == (
        "SELECT COUNT(*) FROM `ArticleLabel` "
        "WHERE (`Articleid`=?) AND (`Labelid`=?) LIMIT 1",
        [1, 10],
    )
    assert mysql(junction_delete(article, "labels")) == (
        "DELETE FROM `ArticleLabel` WHERE (`Articleid`=?)",
        [1],
    )
    assert mysql(junction_delete(article, "labels", first, second)) == (
        "DELETE FROM `ArticleLabel` WHERE (`Articleid`=?) AND (`Labelid` IN (?,?))",
        [1, 10, 20],
    )


def test_junction_uses_through_entity():
    sql, args = mysql(junction_insert(Course(id=1), "students", Student(id=2)))
    assert sql == "INSERT INTO `enrollment` (`Courseid`,`Studentid`) VALUES (?,?)"
    assert args == [1, 2]


def test_junction_type_mismatch():
    with pytest.raises(RecordTypeMismatchError, match="Article.labels"):
        junction_insert(Article(id=1), "labels", Writer(id=1))


def test_junction_needs_many_to_many():
    with pytest.raises(RelationError, match="not many to many column"):
        junction_insert(Writer(id=1), "articles", Article(id=1))


# -- End to end against SQLite -------------------------------------------------

_SCHEMA = (
    'CREATE TABLE "Writer" ("id" INTEGER PRIMARY KEY AUTOINCREMENT, '
    '"name" TEXT, "email" TEXT)',
    'CREATE TABLE "Article" ("id" INTEGER PRIMARY KEY AUTOINCREMENT, '
    '"title" TEXT, "Writerid" INTEGER)',
    'CREATE TABLE "Label" ("id" INTEGER PRIMARY KEY AUTOINCREMENT, "text" TEXT)',
    'CREATE TABLE "ArticleLabel" ("Articleid" INTEGER, "Labelid" INTEGER)',
)


@pytest.fixture
def db(connection: Connection) -> Connection:
    for ddl in _SCHEMA:
        connection.exec_driver_sql(ddl)
    return connection


def run(conn: Connection, statement: Expandable):
    sql, args = statement.expand("sqlite")
    return conn.exec_driver_sql(sql, tuple(args))


def create(conn: Connection, record: BaseModel) -> None:
    result = run(conn, insert_for(record))
    set_auto_increment(record, result.lastrowid)


def test_create_read_update_delete(db: Connection):
    writer = Writer(name="Ann", email="ann@example.org")
    create(db, writer)
    assert writer.id == 1

    row = run(db, select_for(writer)).mappings().one()
    loaded = map_to_record(Writer(id=writer.id), row)
    assert isinstance(loaded, Writer)
    assert (loaded.name, loaded.email) == ("Ann", "ann@example.org")

    writer.name = "Bea"
    writer.email = "ignored"
    run(db, update_for(writer, "name"))
    row = run(db, select_for(writer)).mappings().one()
    assert dict(row) == {"name": "Bea", "email": "ann@example.org"}

    assert run(db, delete_for(writer)).rowcount == 1
    assert run(db, select_for(writer)).first() is None


def test_relations_round_trip(db: Connection):
    writer = Writer(name="Ann")
    create(db, writer)
    articles = [Article(title=t, writer=writer) for t in ("one", "two")]
    for article in articles:
        create(db, article)

    rows = run(db, relation_select(writer, "articles")).mappings().all()
    loaded = [map_to_record(Article(), row) for row in rows]
    assert [a.title for a in loaded] == ["one", "two"]
    assert all(a.writer is not None and a.writer.id == writer.id for a in loaded)

    labels = [Label(text="red"), Label(text="blue"), Label(text="green")]
    for label in labels:
        create(db, label)
    article = articles[0]
    run(db, junction_insert(article, "labels", labels[0], labels[2]))

    def linked(label: Label) -> int:
        return run(db, junction_count(article, "labels", label)).scalar_one()

    assert [linked(label) for label in labels] == [1, 0, 1]

    rows = run(db, relation_select(article, "labels", "text")).mappings().all()
    assert sorted(row["text"] for row in rows) == ["green", "red"]

    run(db, junction_delete(article, "labels", labels[0]))
    assert [linked(label) for label in labels] == [0, 0, 1]

    run(db, junction_delete(article, "labels"))
    assert linked(labels[2]) == 0
