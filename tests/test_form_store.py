import os
import unittest

from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

from form_builder.builder.codec import deserialize, serialize
from form_builder.builder.document import Column, ConditionalRule, Field, FormDocument, GlobalStyles, Row
from form_builder.builder.errors import PersistenceError
from form_builder.models.form import Form
from form_builder.services.form_store import SqlFormStore


def _document(name: str = "Stored form") -> FormDocument:
    fields = (
        Field(id="f1", name="status", label="Status", type="select", options=("Open", "Closed")),
        Field(id="f2", name="why", label="Why", type="textarea", conditional=ConditionalRule("status", "Closed")),
    )
    return FormDocument(
        name=name,
        purpose="customer_booking",
        styles=GlobalStyles(logo_url="https://example.com/logo.png"),
        rows=(Row(id="r1", columns=(Column(id="c1", width="100%", fields=fields),)),),
    )


class SqlFormStoreTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        Form.__table__.create(bind=cls.engine)

    @classmethod
    def tearDownClass(cls):
        Form.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            db.execute(delete(Form))
            db.commit()
        self.store = SqlFormStore(self.SessionLocal, actor="editor@example.com")

    def test_save_and_load_round_trip(self):
        document = _document()
        form_id = self.store.save(serialize(document))
        self.assertEqual(deserialize(self.store.load(form_id)), document)

        with self.SessionLocal() as db:
            row = db.query(Form).one()
        self.assertEqual(str(row.id), form_id)
        self.assertEqual(row.created_by, "editor@example.com")
        self.assertEqual(row.settings["styles"]["logoUrl"], "https://example.com/logo.png")

    def test_save_with_id_updates_in_place(self):
        form_id = self.store.save(serialize(_document()))
        self.assertEqual(self.store.save(serialize(_document("Renamed")), form_id), form_id)
        self.assertEqual(self.store.load(form_id)["name"], "Renamed")
        with self.SessionLocal() as db:
            self.assertEqual(db.query(Form).count(), 1)

    def test_name_clash_is_persistence_error(self):
        self.store.save(serialize(_document()))
        with self.assertRaises(PersistenceError):
            self.store.save(serialize(_document()))

    def test_unknown_ids(self):
        with self.assertRaises(PersistenceError):
            self.store.load("00000000-0000-0000-0000-000000000000")
        with self.assertRaises(PersistenceError):
            self.store.load("garbage")
        with self.assertRaises(PersistenceError):
            self.store.save(serialize(_document()), "00000000-0000-0000-0000-000000000000")
