from __future__ import annotations
import sys
from collections import Counter
from vision_core.plate_catalog import GROUPS, basic_plates, catalog_problems, load_catalog

# Expected group sizes for the reference catalog
EXPECTED = {"control": 1, "standard": 6, "confirmation": 8, "diagnostic": 2, "hidden": 3}


def main() -> int:
    plates = load_catalog()
    counts = Counter(p.group for p in plates)
    print(f"Catalog: {len(plates)} plates, basic test = {len(basic_plates(plates))} plates\n")
    for g in GROUPS:
        want = EXPECTED.get(g)
        mark = "" if want is None or counts[g] == want else f"  (expected {want})"
        print(f"  {g:<13}{counts[g]:3d}{mark}")

    problems = catalog_problems(plates)
    if problems:
        print("\nProblems:")
        for p in problems:
            print(f"  - {p}")
        return 1
    print("\n  ✓ Catalog invariants hold")
    return 0


if __name__ == "__main__":
    sys.exit(main())
