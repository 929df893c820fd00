# tests/test_runtime.py
import sys
import time
from pathlib import Path

import pytest

# damit pytest unseren Decoder findet
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from decode_bits import BitsProcessor, JsonResultSaver, SimpleLineReader, YamlConfigLoader

MESSAGES = [
    "C200B40A82",
    "04005AC33890",
    "880086C3E88112",
    "CE00C43D881120",
    "9C0141080250320F1802104A08",
    "A0016C880162017C3686B18A3D4780",
]


@pytest.mark.timeout(10)
@pytest.mark.parametrize("line_count", [10, 500, 2000])
def test_full_run_performance(tmp_path, line_count):
    # 1) Eingabedatei mit vielen Nachrichten anlegen
    data = tmp_path / "input.txt"
    data.write_text("\n".join(MESSAGES[i % len(MESSAGES)] for i in range(line_count)) + "\n")

    # 2) Processor initialisieren
    processor = BitsProcessor(
        config_loader=YamlConfigLoader(),
        line_reader=SimpleLineReader(),
        result_saver=JsonResultSaver(),
    )

    # 3) Laufzeit messen
    start = time.perf_counter()
    results = processor.process(data, overrides={"save_json": False})
    elapsed = time.perf_counter() - start

    # 4) Assertions
    assert len(results) == line_count
    assert all(r.ok for r in results)
    assert elapsed < 5.0, f"BitsDecoder zu langsam: {elapsed:.2f}s"
