import threading

import pytest

from app import create_app
from models import db, Satellite, TLE, Transmitter

ISS_LINE1 = "1 25544U 98067A   24045.50000000  .00016717  00000-0  30245-3 0  9993"
ISS_LINE2 = "2 25544  51.6416 247.4627 0006703 130.5360 325.0288 15.50377579 10000"

TLE_URL = "https://celestrak.org/NORAD/elements/gp.php?CATNR={norad_id}&FORMAT=tle"
TRANSMITTERS_URL = "https://db.satnogs.org/api/transmitters/?satellite__norad_cat_id={norad_id}"

_NO_JSON = object()


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, text='', json_data=_NO_JSON):
        self.status_code = status_code
        self.text = text
        self._json = json_data

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._json is _NO_JSON:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """
    requests-compatible session serving canned answers.

    ``routes`` maps a URL to a FakeResponse, an exception instance, or a
    callable taking the URL and returning either.
    """

    def __init__(self, routes=None, default=None):
        self.routes = dict(routes or {})
        self.default = default if default is not None else FakeResponse(404, 'Not found')
        self.calls = []
        self.timeouts = []
        self._lock = threading.Lock()

    def get(self, url, headers=None, timeout=None):
        with self._lock:
            self.calls.append(url)
            self.timeouts.append(timeout)
        answer = self.routes.get(url, self.default)
        if callable(answer) and not isinstance(answer, FakeResponse):
            answer = answer(url)
        if isinstance(answer, Exception):
            raise answer
        return answer


def tle_text(line1=ISS_LINE1, line2=ISS_LINE2, name=None):
    lines = [name] if name else []
    return '\n'.join(lines + [line1, line2]) + '\n'


@pytest.fixture
def http():
    return FakeSession()


@pytest.fixture
def app(http):
    app = create_app('testing', http_session=http)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def orchestrator(app):
    return app.extensions['catalog_sync']


@pytest.fixture
def auth_header():
    return {'Authorization': 'Bearer test-secret'}


@pytest.fixture
def make_satellites(app):
    def _make(*norad_ids, names=None):
        satellites = []
        for index, norad_id in enumerate(norad_ids):
            name = names[index] if names else f'SAT-{norad_id}'
            satellite = Satellite(norad_id=norad_id, name=name)
            db.session.add(satellite)
            satellites.append(satellite)
        db.session.commit()
        return satellites
    return _make


@pytest.fixture
def add_tle(app):
    def _add(satellite, line1=ISS_LINE1, line2=ISS_LINE2, epoch='2024-045.50000000'):
        tle = TLE(satellite_id=satellite.id, tle_line1=line1, tle_line2=line2, epoch=epoch)
        db.session.add(tle)
        db.session.commit()
        return tle
    return _add


@pytest.fixture
def add_transmitter(app):
    def _add(satellite, description, **fields):
        transmitter = Transmitter(satellite_id=satellite.id, description=description,
                                  alive=fields.pop('alive', True), **fields)
        db.session.add(transmitter)
        db.session.commit()
        return transmitter
    return _add
