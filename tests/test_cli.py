import json
import signal

import pytest

import monitor_rent
from rentwatcher.errors import UnknownSourceError
from rentwatcher.models import ListingDetail, ListingHeader, RentalRecord
from rentwatcher.store import JsonStore


class CardPage:
    def __init__(self, document):
        self._document = document

    def document(self):
        return self._document

    def click(self, selector):
        pass

    def close(self):
        pass


class CardBrowser:
    def __init__(self, documents, on_open=None):
        self.documents = documents
        self.on_open = on_open or {}
        self.closed = False

    def open(self, url):
        if url in self.on_open:
            self.on_open[url]()
        return CardPage(self.documents[url])

    def close(self):
        self.closed = True


class CardExtractor:
    source = "airbnb"
    required_header_fields = ("identity", "url", "title", "price")

    def listing_url(self, query, page):
        return f"https://example.com/s/{query}/homes?page={page}"

    def listing_headers(self, document):
        return document["headers"]

    def total_page_count(self, document):
        return document.get("total")

    def listing_ready(self, document):
        return True


def card(number, price="$40"):
    return ListingHeader(
        identity=f"airbnb:{number}",
        url=f"https://example.com/rooms/{number}",
        title=f"Loft {number}",
        price=price,
        detail=ListingDetail(guest_count=2, room_count=1),
    )


@pytest.fixture
def paths(tmp_path, monkeypatch):
    monkeypatch.setenv("RENTWATCHER_PAGE_INTERVAL", "0")
    monkeypatch.setenv("RENTWATCHER_WAIT_TIMEOUT", "0")
    monkeypatch.setenv("RENTWATCHER_FLUSH_EVERY", "5")
    monkeypatch.delenv("SLACK_WEBHOOK", raising=False)
    return tmp_path / "db.json", tmp_path / "log.txt"


@pytest.fixture
def save_calls(monkeypatch):
    calls = []
    original = JsonStore.save

    def counting_save(self):
        calls.append(len(self))
        original(self)

    monkeypatch.setattr(JsonStore, "save", counting_save)
    return calls


def use_extractor(monkeypatch, extractor):
    def fake_get_extractor(name):
        if name != "airbnb":
            raise UnknownSourceError(f"Unknown source: {name}")
        return extractor

    monkeypatch.setattr(monitor_rent, "get_extractor", fake_get_extractor)


def test_scrape_checkpoints_and_flushes_on_exit(paths, save_calls, monkeypatch):
    db_path, log_path = paths
    documents = {
        "https://example.com/s/kyiv/homes?page=1": {
            "headers": [card(n) for n in range(1, 13)],
            "total": 1,
        }
    }
    use_extractor(monkeypatch, CardExtractor())
    browser = CardBrowser(documents)

    exit_code = monitor_rent.main(
        ["--dbfile", str(db_path), "--logfile", str(log_path), "scrape", "airbnb", "kyiv"],
        browser_factory=lambda: browser,
    )

    assert exit_code == 0
    assert save_calls == [5, 10, 12]
    assert browser.closed
    payload = json.loads(db_path.read_text(encoding="utf-8"))
    assert len(payload) == 12
    assert payload["airbnb:1"]["guestCount"] == 2
    assert log_path.exists()


def test_scrape_abort_still_flushes_processed_records(paths, save_calls, monkeypatch):
    db_path, log_path = paths
    documents = {
        "https://example.com/s/kyiv/homes?page=1": {"headers": [card(1)], "total": 2},
        "https://example.com/s/kyiv/homes?page=2": {"headers": [card(2, price="")]},
    }
    use_extractor(monkeypatch, CardExtractor())

    exit_code = monitor_rent.main(
        ["--dbfile", str(db_path), "--logfile", str(log_path), "scrape", "airbnb", "kyiv"],
        browser_factory=lambda: CardBrowser(documents),
    )

    assert exit_code == 1
    assert save_calls == [1]
    assert list(json.loads(db_path.read_text(encoding="utf-8"))) == ["airbnb:1"]


def test_scrape_unknown_source_lists_sources(paths, monkeypatch, capsys):
    db_path, log_path = paths
    use_extractor(monkeypatch, CardExtractor())

    exit_code = monitor_rent.main(
        ["--dbfile", str(db_path), "--logfile", str(log_path), "scrape", "craigslist", "kyiv"],
        browser_factory=lambda: pytest.fail("browser should not start"),
    )

    captured = capsys.readouterr()
    assert exit_code == 2
    assert "Unknown source: craigslist" in captured.err
    assert "Available sources:" in captured.out
    assert not db_path.exists()


def test_scrape_refuses_corrupt_store(paths, save_calls, monkeypatch):
    db_path, log_path = paths
    db_path.write_text("{broken", encoding="utf-8")
    use_extractor(monkeypatch, CardExtractor())

    exit_code = monitor_rent.main(
        ["--dbfile", str(db_path), "--logfile", str(log_path), "scrape", "airbnb", "kyiv"],
        browser_factory=lambda: pytest.fail("browser should not start"),
    )

    assert exit_code == 1
    assert save_calls == []
    assert db_path.read_text(encoding="utf-8") == "{broken"


def test_digest_prints_latest_and_exports(paths, capsys):
    db_path, log_path = paths
    store = JsonStore(path=db_path)
    for number, day in ((1, "01"), (2, "03"), (3, "02")):
        store.set(
            f"olx:{number}",
            RentalRecord(
                source="olx",
                url=f"https://example.com/offer/{number}.html",
                title=f"Flat {number}",
                price="1 грн.",
                first_scraped_at=f"2025-01-{day}T00:00:00+00:00",
                last_scraped_at=f"2025-01-{day}T00:00:00+00:00",
            ),
        )
    store.save()
    xlsx_path = db_path.parent / "digest.xlsx"

    exit_code = monitor_rent.main(
        ["--dbfile", str(db_path), "--logfile", str(log_path), "digest", "2", "--xlsx", str(xlsx_path)]
    )

    lines = capsys.readouterr().out.splitlines()
    assert exit_code == 0
    assert lines == [
        "[2025-01-03T00:00:00+00:00] https://example.com/offer/2.html",
        "[2025-01-02T00:00:00+00:00] https://example.com/offer/3.html",
    ]
    assert xlsx_path.exists()


def test_sources_command(paths, capsys):
    db_path, log_path = paths
    exit_code = monitor_rent.main(["--dbfile", str(db_path), "--logfile", str(log_path), "sources"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "olx" in out
    assert "airbnb" in out


def test_clear_removes_store_and_log(paths):
    db_path, log_path = paths
    db_path.write_text("{}", encoding="utf-8")
    log_path.write_text("old log\n", encoding="utf-8")

    exit_code = monitor_rent.main(["--dbfile", str(db_path), "--logfile", str(log_path), "clear"])

    assert exit_code == 0
    assert not db_path.exists()
    assert not log_path.exists()


def interrupted_site():
    page_two = "https://example.com/s/kyiv/homes?page=2"
    documents = {
        "https://example.com/s/kyiv/homes?page=1": {
            "headers": [card(n) for n in range(1, 8)],
            "total": 2,
        },
        page_two: {"headers": [card(8)]},
    }
    return documents, page_two


def test_scrape_flushes_store_on_sigterm(paths, save_calls, monkeypatch):
    db_path, log_path = paths
    documents, page_two = interrupted_site()
    use_extractor(monkeypatch, CardExtractor())
    browser = CardBrowser(
        documents, on_open={page_two: lambda: signal.raise_signal(signal.SIGTERM)}
    )
    previous_handler = signal.getsignal(signal.SIGTERM)

    with pytest.raises(SystemExit) as excinfo:
        monitor_rent.main(
            ["--dbfile", str(db_path), "--logfile", str(log_path), "scrape", "airbnb", "kyiv"],
            browser_factory=lambda: browser,
        )

    assert excinfo.value.code == 128 + signal.SIGTERM
    assert save_calls == [5, 7]
    assert browser.closed
    assert len(json.loads(db_path.read_text(encoding="utf-8"))) == 7
    assert signal.getsignal(signal.SIGTERM) == previous_handler


def test_scrape_flushes_store_on_keyboard_interrupt(paths, save_calls, monkeypatch):
    db_path, log_path = paths
    documents, page_two = interrupted_site()
    use_extractor(monkeypatch, CardExtractor())

    def interrupt():
        raise KeyboardInterrupt

    browser = CardBrowser(documents, on_open={page_two: interrupt})

    exit_code = monitor_rent.main(
        ["--dbfile", str(db_path), "--logfile", str(log_path), "scrape", "airbnb", "kyiv"],
        browser_factory=lambda: browser,
    )

    assert exit_code == 130
    assert save_calls == [5, 7]
    assert browser.closed
    assert len(json.loads(db_path.read_text(encoding="utf-8"))) == 7
