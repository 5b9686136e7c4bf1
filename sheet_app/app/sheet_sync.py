"""
스프레드시트 export(TSV/CSV)를 listing API로 밀어 넣는 CLI.

    python -m sheet_app.app.sheet_sync -m sync -k tools -f sheet_app/resources/data/tools.tsv
    python -m sheet_app.app.sheet_sync -m rebuild -k tools
"""

import os
import sys
import csv
import argparse
import traceback
import requests
from typing import Any, Dict, Iterator, List
from datetime import datetime
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


# 시트 동기화는 slug 기준 upsert라 POST 재시도가 안전하다
retry = Retry(
    total=3,
    backoff_factor=0.3,
    status_forcelist=(429, 500, 502, 503, 504),
    allowed_methods=("GET", "POST"),
)
adapter = HTTPAdapter(max_retries=retry, pool_connections=10, pool_maxsize=10)

KINDS = ("tools", "news", "videos")
DEFAULT_CHUNK_SIZE = 200
# SyncResult 본문을 돌려주는 상태 코드
SYNC_RESULT_STATUSES = (200, 207, 400)


def read_sheet(file_path: str) -> List[Dict[str, str]]:
    """
    시트 export 파일을 레코드 리스트로 읽는다.
    - 첫 행은 헤더(camelCase 키)
    - .csv 는 콤마, 그 외는 탭 구분
    - 빈 셀은 키째로 뺀다(서버에서 누락으로 판단)
    """
    delimiter = "," if file_path.lower().endswith(".csv") else "\t"
    records = []
    with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f, delimiter=delimiter)
        for row in reader:
            record = {
                key.strip(): value.strip()
                for key, value in row.items()
                if key and value is not None and value.strip()
            }
            if record:
                records.append(record)
    return records


def chunked(items: List[Any], size: int) -> Iterator[List[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class SheetSyncClient:
    def __init__(self, base_url: str = "http://localhost:8000", api_key: str | None = None):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.session.mount(self.base_url, adapter)
        self.session.headers.update({
            "Connection": "keep-alive",
            "Content-Type": "application/json"
        })
        if api_key:
            self.session.headers["X-API-Key"] = api_key

    def close(self):
        self.session.close()

    def sync(self, kind: str, records: List[Dict[str, Any]], chunk_size: int = DEFAULT_CHUNK_SIZE) -> Dict[str, Any]:
        """
        레코드를 chunk_size 단위로 나눠 보내고 결과를 합친다.
        전송 자체가 실패한 chunk는 레코드 수만큼 에러로 센다.
        """
        summary = {"total": 0, "inserted": 0, "updated": 0, "errors": 0, "errorMessages": []}
        url = f"{self.base_url}/api/{kind}/sync-from-sheet"
        for no, chunk in enumerate(chunked(records, chunk_size), start=1):
            print(f"kind={kind} chunk={no} records={len(chunk)} 전송...")
            try:
                response = self.session.post(url, json={"items": chunk}, timeout=60)
            except requests.RequestException as e:
                self._fail_chunk(summary, no, len(chunk), str(e))
                continue

            body = self._json(response)
            if response.status_code in SYNC_RESULT_STATUSES and "total" in body:
                for key in ("total", "inserted", "updated", "errors"):
                    summary[key] += int(body.get(key, 0))
                summary["errorMessages"].extend(body.get("errorMessages", []))
            else:
                self._fail_chunk(summary, no, len(chunk), f"HTTP {response.status_code} {response.text[:200]}")
        return summary

    def rebuild(self, kind: str) -> Dict[str, Any]:
        response = self.session.post(f"{self.base_url}/api/index/{kind}/rebuild", timeout=600)
        response.raise_for_status()
        return response.json()

    def _fail_chunk(self, summary: Dict[str, Any], no: int, size: int, reason: str):
        print(f"chunk={no} 전송 실패: {reason}")
        summary["total"] += size
        summary["errors"] += size
        summary["errorMessages"].append(f"chunk {no}: {reason}")

    def _json(self, response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}


def sanitize(v: Any) -> str:
    """TSV 안전화: 탭/개행을 공백으로."""
    s = "" if v is None else str(v)
    return s.replace("\t", " ").replace("\r\n", " ").replace("\r", " ").replace("\n", " ")


def write_error_report(summary: Dict[str, Any], output_file_path: str):
    """실패 메시지를 TSV로 남긴다(Excel 친화: utf-8-sig + CRLF)."""
    with open(output_file_path, "w", encoding="utf-8-sig", newline="") as wf:
        writer = csv.writer(wf, delimiter="\t", lineterminator="\r\n")
        writer.writerow(["", "레코드", "사유"])
        for no, message in enumerate(summary.get("errorMessages", []), start=1):
            label, sep, reason = message.partition(": ")
            if not sep:
                label, reason = "", message
            writer.writerow([no, sanitize(label), sanitize(reason)])
        writer.writerow([
            "최종결과",
            sanitize(f"total={summary['total']} inserted={summary['inserted']} updated={summary['updated']}"),
            sanitize(f"errors={summary['errors']}"),
        ])


def run_sync(args) -> Dict[str, Any]:
    records = read_sheet(args.sheet_file)
    client = SheetSyncClient(base_url=args.api_url, api_key=args.api_key)
    try:
        summary = client.sync(args.kind, records, chunk_size=args.chunk_size)
    finally:
        client.close()

    report_file_path = args.report_file or os.path.splitext(args.sheet_file)[0] + "_errors.tsv"
    write_error_report(summary, report_file_path)
    print(
        f"sync done: kind={args.kind} total={summary['total']} inserted={summary['inserted']} "
        f"updated={summary['updated']} errors={summary['errors']} report={report_file_path}"
    )
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        '--mode',
        '-m',
        help='execution mode (sync: push sheet rows, rebuild: full reindex)',
        choices=['sync', 'rebuild'],
        default='sync',
        dest='mode')
    parser.add_argument(
        '--kind',
        '-k',
        choices=KINDS,
        default='tools',
        dest='kind')
    parser.add_argument(
        '--sheet_file',
        '-f',
        help='sheet export path(example: sheet_app/resources/data/tools.tsv)',
        default='sheet_app/resources/data/tools.tsv',
        dest='sheet_file')
    parser.add_argument(
        '--report_file',
        '-r',
        help='error report path(default: <sheet_file>_errors.tsv)',
        default=None,
        dest='report_file')
    parser.add_argument(
        '--chunk_size',
        '-c',
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        dest='chunk_size')
    parser.add_argument(
        '--api_url',
        '-u',
        default=os.getenv('LISTING_API_URL', 'http://localhost:8000'),
        help='api url',
        dest='api_url')
    parser.add_argument(
        '--api_key',
        default=os.getenv('API_KEY'),
        help='X-API-Key header value',
        dest='api_key')
    return parser


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    print(f"sheet sync start: mode={args.mode} kind={args.kind} api_url={args.api_url}")
    try:
        start_time = datetime.now()
        if args.mode == 'sync':
            summary = run_sync(args)
            exit_code = 0 if summary["errors"] == 0 else 2
        else:
            client = SheetSyncClient(base_url=args.api_url, api_key=args.api_key)
            try:
                result = client.rebuild(args.kind)
            finally:
                client.close()
            print(f"rebuild done: {result}")
            exit_code = 0
        print(f"elapsed={(datetime.now() - start_time).total_seconds()} seconds")
        return exit_code
    except Exception as e:
        print(f'error: {e}')
        traceback.print_exc()
        return 1


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
