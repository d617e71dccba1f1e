"""A small CBDB database shared by the tests.

Kinship around Wang Anshi (1762):

    90 <-father- 100 <-father- 1762 -son-> 101 (two rows, codes 223 and 130)
                                  |-brother-> 102
                                  |-unknown-> 999 (not in BIOG_MAIN)

plus an association 1762 <-> 200, an office colleague 201, two seeds joined
only through 650 (600, 700), an isolated pair (400, 500 -> 501) and a
kinship cycle 800 -> 801 -> 802 -> 800.
"""
import tempfile
from pathlib import Path

from api.services.db import Database
from cli.db import connect, init_db, insert_rows


def _person(pid, name_chn, name=None, index_year=None, female=0, dy=15, birth=None, death=None):
    return {
        "c_personid": pid,
        "c_name": name,
        "c_name_chn": name_chn,
        "c_index_year": index_year,
        "c_female": female,
        "c_dy": dy,
        "c_birthyear": birth,
        "c_deathyear": death,
    }


PERSONS = [
    _person(1762, "王安石", "Wang Anshi", 1021, birth=1021, death=1086),
    _person(90, "王用之", "Wang Yongzhi", 960),
    _person(100, "王益", "Wang Yi", 994, birth=994, death=1039),
    _person(101, "王雱", "Wang Pang", 1044, birth=1044, death=1076),
    _person(102, "", "Wang Anguo", 1028),
    _person(200, "蘇軾", "Su Shi", 1037, birth=1037, death=1101),
    _person(201, "呂惠卿", "Lü Huiqing", 1032),
    _person(202, "曾布", "Zeng Bu", 1036),
    _person(300, "無親", None, 1000),
    _person(400, "甲", None, 1100),
    _person(500, "乙", None, 1100),
    _person(501, "丙", None, 1120),
    _person(600, "張", None, 1050),
    _person(601, "張子", None, 1100),
    _person(650, "李氏", None, 1050, female=1),
    _person(700, "陳", None, 1055),
    _person(800, "趙", None, 1000),
    _person(801, "錢", None, 1000),
    _person(802, "孫", None, 1000),
]

KINSHIP_CODES = [
    {"c_kincode": 75, "c_kinrel_chn": "父", "c_kinrel": "F"},
    {"c_kincode": 223, "c_kinrel_chn": "子", "c_kinrel": "S"},
    {"c_kincode": 181, "c_kinrel_chn": "弟", "c_kinrel": "B-"},
    {"c_kincode": 0, "c_kinrel_chn": "未詳", "c_kinrel": "U"},
]


def _kin(pid, kin_id, code):
    return {"c_personid": pid, "c_kin_id": kin_id, "c_kin_code": code}


KIN_DATA = [
    _kin(1762, 100, 75),
    _kin(1762, 101, 223),
    _kin(1762, 101, 130),  # code missing from KINSHIP_CODES
    _kin(1762, 102, 181),
    _kin(1762, 999, 0),
    _kin(100, 1762, 223),
    _kin(101, 1762, 75),
    _kin(100, 90, 75),
    _kin(300, None, 75),
    _kin(500, 501, 223),
    _kin(600, 650, 223),
    _kin(700, 650, 223),
    _kin(600, 601, 223),
    _kin(800, 801, 223),
    _kin(801, 802, 223),
    _kin(802, 800, 223),
]

ASSOC_CODES = [{"c_assoc_code": 9, "c_assoc_desc": "Friend", "c_assoc_desc_chn": "友"}]

ASSOC_DATA = [
    {"c_assoc_code": 9, "c_personid": 1762, "c_assoc_id": 200},
    {"c_assoc_code": 9, "c_personid": 200, "c_assoc_id": 1762},
]

OFFICE_CODES = [{"c_office_id": 5001, "c_dy": 15, "c_office_chn": "參知政事"}]


def _posting(pid, office_id, posting_id, first, last):
    return {
        "c_personid": pid,
        "c_office_id": office_id,
        "c_posting_id": posting_id,
        "c_firstyear": first,
        "c_lastyear": last,
        "c_dy": 15,
    }


POSTED_TO_OFFICE_DATA = [
    _posting(1762, 5001, 1, 1069, 1070),
    _posting(201, 5001, 2, 1070, 1072),
    _posting(202, 5001, 3, 1080, 1085),  # no overlap with 1762
    _posting(1762, 0, 4, 1060, 1061),  # unknown office
    _posting(201, 0, 5, 1060, 1061),
]

ADDR_CODES = [
    {"c_addr_id": 1, "c_name": "Linchuan", "c_name_chn": "臨川", "x_coord": 116.3, "y_coord": 27.9},
    {"c_addr_id": 2, "c_name": "Jiangning", "c_name_chn": "江寧", "x_coord": 118.8, "y_coord": 32.0},
]


def _addr(pid, addr_id, addr_type, sequence=1):
    return {"c_personid": pid, "c_addr_id": addr_id, "c_addr_type": addr_type, "c_sequence": sequence}


BIOG_ADDR_DATA = [
    _addr(1762, 1, 1),
    _addr(101, 1, 1),
    _addr(100, 2, 1),
    _addr(200, 2, 1, sequence=1),
    _addr(200, 1, 8, sequence=2),
]

TABLES = {
    "BIOG_MAIN": PERSONS,
    "KINSHIP_CODES": KINSHIP_CODES,
    "KIN_DATA": KIN_DATA,
    "ASSOC_CODES": ASSOC_CODES,
    "ASSOC_DATA": ASSOC_DATA,
    "OFFICE_CODES": OFFICE_CODES,
    "POSTED_TO_OFFICE_DATA": POSTED_TO_OFFICE_DATA,
    "ADDR_CODES": ADDR_CODES,
    "BIOG_ADDR_DATA": BIOG_ADDR_DATA,
}


def build_sample_db(db_path: Path) -> Database:
    init_db(db_path)
    conn = connect(db_path)
    try:
        for table, rows in TABLES.items():
            insert_rows(conn, table, rows)
        conn.commit()
    finally:
        conn.close()
    return Database(db_path)


class SampleDatabaseMixin:
    """Builds the sample database once per TestCase class."""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls._tmpdir = tempfile.TemporaryDirectory()
        cls.db_path = Path(cls._tmpdir.name) / "cbdb.sqlite"
        cls.db = build_sample_db(cls.db_path)

    @classmethod
    def tearDownClass(cls):
        cls._tmpdir.cleanup()
        super().tearDownClass()
