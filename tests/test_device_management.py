from app.concierge.services.device_management import DeviceManagementClient, lock_devices, unlock_devices


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = ""

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.responses.pop(0)


def _configure(monkeypatch):
    prefix = "app.concierge.services.device_management.settings"
    monkeypatch.setattr(f"{prefix}.DEVICE_MGMT_URL", "https://mdm.example.com/")
    monkeypatch.setattr(f"{prefix}.DEVICE_MGMT_USER", "api")
    monkeypatch.setattr(f"{prefix}.DEVICE_MGMT_PASSWORD", "secret")


def test_lock_computer_uses_computer_command_endpoint(monkeypatch):
    _configure(monkeypatch)
    session = FakeSession(
        [
            FakeResponse(404),
            FakeResponse(200, {"computer": {"general": {"id": 42}}}),
            FakeResponse(201),
        ]
    )

    assert DeviceManagementClient(session=session).lock_device("C02XK1") is True

    method, url, kwargs = session.calls[-1]
    assert method == "POST"
    assert url == "https://mdm.example.com/JSSResource/computercommands/command/EnableLostMode"
    assert kwargs["data"].startswith("<computer_command>")
    assert "<computer><id>42</id></computer>" in kwargs["data"]
    assert "mobile_device" not in kwargs["data"]
    assert kwargs["auth"] == ("api", "secret")


def test_unlock_mobile_device_uses_mobile_command_endpoint(monkeypatch):
    _configure(monkeypatch)
    session = FakeSession(
        [
            FakeResponse(200, {"mobile_device": {"general": {"id": 7}}}),
            FakeResponse(201),
        ]
    )

    client = DeviceManagementClient(session=session)
    assert client.unlock_device("DMPX1") is True

    assert [call[1] for call in session.calls] == [
        "https://mdm.example.com/JSSResource/mobiledevices/serialnumber/DMPX1",
        "https://mdm.example.com/JSSResource/mobiledevicecommands/command/DisableLostMode",
    ]
    assert "<mobile_device><id>7</id></mobile_device>" in session.calls[-1][2]["data"]


def test_find_device_reports_kind(monkeypatch):
    _configure(monkeypatch)
    session = FakeSession([FakeResponse(404), FakeResponse(200, {"computer": {"general": {"id": 3}}})])

    assert DeviceManagementClient(session=session).find_device("C02") == ("computer", 3)


def test_unknown_device_is_skipped(monkeypatch):
    _configure(monkeypatch)
    session = FakeSession([FakeResponse(404), FakeResponse(404)])
    assert DeviceManagementClient(session=session).unlock_device("NOPE") is False
    assert len(session.calls) == 2


def test_unconfigured_client_makes_no_calls():
    session = FakeSession([])
    assert DeviceManagementClient(session=session).lock_device("C02XK1") is False
    assert session.calls == []


def test_per_device_failures_are_logged_and_do_not_stop_the_batch(caplog):
    attempted = []

    class Flaky:
        def unlock_device(self, serial):
            attempted.append(serial)
            if serial == "BAD":
                raise RuntimeError("mdm down")
            return True

        lock_device = unlock_device

    unlock_devices(["A1", "BAD", "A2"], client=Flaky())
    lock_devices(["A3"], client=Flaky())

    assert attempted == ["A1", "BAD", "A2", "A3"]
    assert "Failed to unlock device" in caplog.text
