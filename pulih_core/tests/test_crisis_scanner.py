from pulih_core.scanners import CrisisScanner


def test_scan_matches_default_keywords():
    scanner = CrisisScanner()
    assert scanner.scan("aku ingin mati") is True
    assert scanner.scan("aku ingin makan") is False


def test_scan_is_case_insensitive_substring():
    scanner = CrisisScanner()
    assert scanner.scan("Rasanya AKU TIDAK KUAT LAGI...")
    match = scanner.match("pernah berpikir Bunuh Diri dan ingin mati")
    assert match.triggered
    assert match.keywords == ["bunuh diri", "ingin mati"]


def test_scan_empty_text():
    scanner = CrisisScanner()
    assert scanner.scan("") is False
    assert scanner.scan(None) is False


def test_custom_keywords():
    scanner = CrisisScanner(["  Menyerah ", ""])
    assert scanner.keywords == ["menyerah"]
    assert scanner.scan("aku mau menyerah")
    assert not scanner.scan("aku ingin mati")
