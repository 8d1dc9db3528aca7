# bizscout/report/json_report.py

"""
JSON report for BizScout: serializes a CrawlResult into a file.
"""
import json
from pathlib import Path

from bizscout.aggregator import CrawlResult


def render_json(result: CrawlResult, output_path: Path | str) -> Path:
    """
    Save *result* as UTF-8 JSON at *output_path*.

    :param result: CrawlResult of one crawl
    :param output_path: path of the JSON file
    :return: Path of the saved file

    Example:
    ```python
    from bizscout.report.json_report import render_json
    report_path = render_json(result, 'reports/bluebottle.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open('w', encoding='utf-8') as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)

    return output
