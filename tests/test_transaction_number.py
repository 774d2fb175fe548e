from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime

import pytest

from db.counter_dal import (
    MongoTransactionNumberGenerator,
    create_transaction_number_generator,
    get_counters,
    increment_counter,
)
from utils.transaction_number import (
    TransactionNumberGenerator,
    format_datepart,
    format_transaction_number,
    parse_reference_date,
)


@pytest.fixture
def generator():
    return TransactionNumberGenerator()


def test_first_purchase_number_of_the_day(generator):
    assert generator.generate("PO", "2026-01-06") == "PO-260106-0001"


def test_second_call_same_day_increments(generator):
    generator.generate("PO", "2026-01-06")
    assert generator.generate("PO", "2026-01-06") == "PO-260106-0002"


def test_stock_opname_uses_full_year(generator):
    assert generator.generate("SO", "2026-01-06") == "SO-20260106-0001"


def test_new_day_restarts_sequence(generator):
    generator.generate("SL", "2026-01-06")
    generator.generate("SL", "2026-01-06")
    assert generator.generate("SL", "2026-01-07") == "SL-260107-0001"


def test_counters_are_independent_per_prefix(generator):
    assert generator.generate("PO", "2026-01-06") == "PO-260106-0001"
    assert generator.generate("SL", "2026-01-06") == "SL-260106-0001"
    assert generator.generate("PO", "2026-01-06") == "PO-260106-0002"


def test_claim_prefix_uses_full_year(generator):
    assert generator.generate("CL", "2026-03-15") == "CL-20260315-0001"


def test_unknown_prefix_gets_long_date(generator):
    assert generator.generate("XX", "2026-01-06") == "XX-20260106-0001"


def test_prefix_match_is_case_sensitive(generator):
    assert generator.generate("po", "2026-01-06") == "po-20260106-0001"


def test_sequence_is_gap_free(generator):
    numbers = [generator.generate("PO", "2026-01-06") for _ in range(25)]
    assert [int(number.rsplit("-", 1)[1]) for number in numbers] == list(range(1, 26))


def test_sequence_widens_past_9999(generator):
    for _ in range(9999):
        generator.generate("PO", "2026-01-06")
    assert generator.generate("PO", "2026-01-06") == "PO-260106-10000"


def test_date_and_datetime_are_accepted(generator):
    assert generator.generate("PO", date(2026, 1, 6)) == "PO-260106-0001"
    assert generator.generate("PO", datetime(2026, 1, 6, 17, 45)) == "PO-260106-0002"


@pytest.mark.parametrize("missing", [None, "", "   "])
def test_missing_date_means_today(generator, missing):
    expected = f"PO-{date.today().strftime('%y%m%d')}-0001"
    assert generator.generate("PO", missing) == expected


@pytest.mark.parametrize("invalid", ["06-01-2026", "2026-13-01", "not a date", 20260106])
def test_invalid_date_is_rejected(generator, invalid):
    with pytest.raises(ValueError):
        generator.generate("PO", invalid)


def test_invalid_date_does_not_consume_a_number(generator):
    with pytest.raises(ValueError):
        generator.generate("PO", "2026-02-30")
    assert generator.generate("PO", "2026-01-06") == "PO-260106-0001"


def test_prefix_must_be_a_string(generator):
    with pytest.raises(ValueError):
        generator.generate(None, "2026-01-06")


def test_fresh_generator_starts_over():
    TransactionNumberGenerator().generate("PO", "2026-01-06")
    assert TransactionNumberGenerator().generate("PO", "2026-01-06") == "PO-260106-0001"


def test_concurrent_generation_has_no_duplicates_or_gaps(generator):
    with ThreadPoolExecutor(max_workers=8) as pool:
        numbers = list(pool.map(lambda _: generator.generate("SL", "2026-01-06"), range(400)))
    sequences = sorted(int(number.rsplit("-", 1)[1]) for number in numbers)
    assert sequences == list(range(1, 401))


def test_parse_reference_date_strips_whitespace():
    assert parse_reference_date(" 2026-01-06 ") == date(2026, 1, 6)


def test_format_helpers():
    assert format_datepart("SL", date(2026, 12, 31)) == "261231"
    assert format_datepart("SO", date(2026, 12, 31)) == "20261231"
    assert format_transaction_number("SO", "20261231", 42) == "SO-20261231-0042"


def test_mongo_generator_follows_the_same_format(db):
    numbers = MongoTransactionNumberGenerator(lambda: db)
    assert numbers.generate("PO", "2026-01-06") == "PO-260106-0001"
    assert numbers.generate("PO", "2026-01-06") == "PO-260106-0002"
    assert numbers.generate("SO", "2026-01-06") == "SO-20260106-0001"
    assert numbers.generate("SL", "2026-01-07") == "SL-260107-0001"


def test_mongo_counters_survive_a_new_generator(db):
    MongoTransactionNumberGenerator(lambda: db).generate("PO", "2026-01-06")
    assert MongoTransactionNumberGenerator(lambda: db).generate("PO", "2026-01-06") == "PO-260106-0002"


def test_increment_counter_creates_and_lists_counters(db):
    assert increment_counter(db, "SO", "20260106") == 1
    assert increment_counter(db, "SO", "20260106") == 2
    increment_counter(db, "PO", "260106")

    counters = get_counters(db, "SO")
    assert len(counters) == 1
    assert counters[0]["_id"] == "SO|20260106"
    assert counters[0]["sequence"] == 2
    assert len(get_counters(db)) == 2


def test_backend_selection(db):
    assert type(create_transaction_number_generator("memory")) is TransactionNumberGenerator
    assert isinstance(create_transaction_number_generator("mongodb", lambda: db), MongoTransactionNumberGenerator)
    with pytest.raises(ValueError):
        create_transaction_number_generator("mongodb")
    with pytest.raises(ValueError):
        create_transaction_number_generator("sqlite")
