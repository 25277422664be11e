from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

from sqlalchemy import select

from app.concierge.db.models import Shipment
from tests.factories import creation_payload, make_location, make_shipment, receive_payload

# SQLite serialises writers; a writer that gives up waiting surfaces as LOCK_TIMEOUT.
LOSING_CODES = {"SHIPMENT_STATUS_CONFLICT", "LOCK_TIMEOUT"}


def _run_together(count, call):
    barrier = Barrier(count)

    def worker(index):
        barrier.wait()
        return call(index)

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(worker, range(count)))


def test_parallel_creations_get_distinct_codes(client, db_session, admin_headers):
    make_location(db_session, name="Berlin Office")

    responses = _run_together(
        8,
        lambda index: client.post(
            "/api/shipments",
            headers=admin_headers,
            json=creation_payload("Berlin Office", serials=(f"SER-{index}",)),
        ),
    )

    created = [response for response in responses if response.status_code == 201]
    for response in responses:
        if response.status_code != 201:
            assert response.status_code == 409
            assert response.json()["code"] in {"SHORT_CODE_EXHAUSTED", "LOCK_TIMEOUT"}
    assert created
    codes = [response.json()["short_code"] for response in created]
    assert len(set(codes)) == len(codes)
    db_session.expire_all()
    stored = db_session.execute(select(Shipment.short_code)).scalars().all()
    assert sorted(stored) == sorted(codes)


def test_parallel_receipts_of_one_shipment_have_one_winner(client, db_session, admin_headers):
    shipment_id = make_shipment(db_session, serials=("A1",)).id

    responses = _run_together(
        2,
        lambda index: client.put(
            "/api/public/shipments/ABCDEF",
            json=receive_payload(received=("A1",), name=f"Recipient {index}"),
        ),
    )

    statuses = sorted(response.status_code for response in responses)
    assert statuses == [200, 409]
    winner = next(index for index, response in enumerate(responses) if response.status_code == 200)
    loser = responses[1 - winner]
    assert loser.json()["code"] in LOSING_CODES
    db_session.expire_all()
    stored = db_session.get(Shipment, shipment_id)
    assert stored.status == "RECEIVED"
    assert stored.recipient_name == f"Recipient {winner}"
