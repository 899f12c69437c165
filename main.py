import argparse
import logging
import mimetypes
import os
import sys
from pathlib import Path

from ecom_studio.clients import StudioClient, SupabaseClient
from ecom_studio.config import STUDIO_API_URL, SUPABASE_ANON_KEY, SUPABASE_URL
from ecom_studio.models import WorkflowState
from ecom_studio.services import (
    BatchWorkflow,
    ComputerUploadSource,
    CreditService,
    ExcelBatchSource,
    GenerationService,
    GenerationWorkflow,
    LibrarySource,
    UrlSource,
)
from ecom_studio.toast import Toaster


def build_source(args, studio: StudioClient, user_id: str):
    if args.method == "url":
        return UrlSource(studio), {"product_url": args.target}
    if args.method == "library":
        return LibrarySource(studio, user_id), {}
    if args.method == "upload":
        files = [
            (Path(p).name, Path(p).read_bytes(), mimetypes.guess_type(p)[0] or "application/octet-stream")
            for p in args.files
        ]
        return ComputerUploadSource(studio, user_id), {"files": files}
    raise ValueError(f"Unknown method: {args.method}")


def run_single(args, studio, credits, generation, toaster) -> int:
    source, params = build_source(args, studio, args.user)
    workflow = GenerationWorkflow(
        source, generation, credits, toaster,
        on_tick=lambda t: print(f"\r  Processing... {t}", end="", flush=True),
    )
    candidates = workflow.load(**params)
    if not candidates:
        return 1

    for i, candidate in enumerate(candidates, 1):
        print(f"  [{i}] {candidate.url}")
    if not source.auto_select:
        for pick in args.pick:
            if 1 <= pick <= len(candidates):
                workflow.toggle(candidates[pick - 1].url)

    workflow.set_product_code(args.code)
    if not workflow.confirm_selection():
        return 1
    for slot in range(len(workflow.unit.selection)):
        workflow.update_setting(slot, duration=args.duration, prompt=args.prompt)

    try:
        state = workflow.submit()
    finally:
        workflow.dispose()
    print()
    if workflow.video_url:
        print(f"Video: {workflow.video_url}")
    return 0 if state == WorkflowState.COMPLETED else 1


def run_batch(args, studio, credits, generation, toaster) -> int:
    workflow = BatchWorkflow(ExcelBatchSource(studio), generation, credits, toaster)
    if not workflow.import_spreadsheet(Path(args.target)):
        return 1

    for index, unit in enumerate(workflow.units):
        for pick in args.pick:
            if 1 <= pick <= len(unit.images):
                workflow.toggle(index, unit.images[pick - 1].url)
        if not workflow.confirm(index):
            print(f"Skipping batch: URL {index + 1} has no selectable images", flush=True)
            return 1

    accepted = workflow.generate_all()
    print(f"Submitted {accepted}/{len(workflow.units)} videos")
    return 0 if accepted else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Create product videos from images")
    parser.add_argument("method", choices=["url", "library", "upload", "batch"])
    parser.add_argument("target", nargs="?", default="", help="Product URL or .xlsx file")
    parser.add_argument("--files", nargs="*", default=[], help="Image files (upload)")
    parser.add_argument("--pick", nargs="*", type=int, default=[1], help="1-based image numbers to select")
    parser.add_argument("--code", default="", help="Product name / code / barcode")
    parser.add_argument("--duration", default="5", choices=["5", "10"])
    parser.add_argument("--prompt", default="")
    parser.add_argument("--user", default=os.getenv("STUDIO_USER_ID"))
    parser.add_argument("--token", default=os.getenv("STUDIO_ACCESS_TOKEN"))
    args = parser.parse_args()

    if not args.user or not args.token:
        print("Error: STUDIO_USER_ID and STUDIO_ACCESS_TOKEN must be set in .env (or --user/--token)")
        return 1

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    toaster = Toaster()
    toaster.subscribe(lambda t: print(f"[{t.kind}] {t.message}", flush=True))

    studio = StudioClient(STUDIO_API_URL, args.token)
    credits = CreditService(SupabaseClient(SUPABASE_URL, SUPABASE_ANON_KEY, args.token), args.user)
    credits.load_pricing()
    credits.load_credits()
    print(f"Balance: {credits.balance} credits ({credits.effective_price_per_image} per image)")

    generation = GenerationService(studio, args.user)
    if args.method == "batch":
        return run_batch(args, studio, credits, generation, toaster)
    return run_single(args, studio, credits, generation, toaster)


if __name__ == "__main__":
    sys.exit(main())
