import threading
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Sequence

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .category_resolver import map_rows_to_expenses
from .column_mapping import suggest_column_mapping
from .config import (
    CORS_ALLOW_ORIGINS,
    DISPLAY_ERROR_LIMIT,
    DISPLAY_ROW_LIMIT,
    DISPLAY_UNMATCHED_LIMIT,
)
from .csv_export import export_filename, filter_by_month, generate_csv
from .csv_import import parse_expenses_csv
from .csv_reader import get_csv_preview_data
from .langfuse_tracer import get_tracer, initialize_tracing
from .logging_utils import configure_logging, log_event
from .models import (
    Category,
    CategoryCreate,
    CategoryMapping,
    ColumnMapping,
    CommitRequest,
    CommitResponse,
    CsvParseResult,
    CsvPreviewData,
    Expense,
    ImportSessionResponse,
    ParsedExpenseRow,
    ParseRequest,
    ParseResponse,
    UploadResponse,
)
from .utils import (
    DuplicateCategoryError,
    StorageError,
    bulk_create_expenses,
    clear_import_session,
    create_category,
    load_categories,
    load_expenses,
    load_import_session,
    save_import_session,
)

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

# Held for the whole commit: session read, expenses read-modify-write, session clear
_commit_lock = threading.Lock()

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    initialize_tracing()
    yield


app = FastAPI(title="Expense Import API", lifespan=lifespan)

# CORS middleware for the frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    log_event(
        "error",
        "storage.error",
        method=request.method,
        path=request.url.path,
        error=str(exc),
    )
    return JSONResponse(
        status_code=500, content={"detail": "Stored data could not be read or written"}
    )


@app.get("/")
def read_root():
    return {"message": "Expense Import API"}


@app.get("/categories", response_model=List[Category])
def get_categories():
    """Get the user's categories"""
    return load_categories()


@app.post("/categories", response_model=Category, status_code=201)
def add_category(request: CategoryCreate):
    """Create a category"""
    try:
        return create_category(request.name, request.color)
    except DuplicateCategoryError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/expenses", response_model=List[Expense])
def get_expenses(month: Optional[str] = Query(None, pattern=MONTH_PATTERN)):
    """List stored expenses, optionally for one yyyy-MM month"""
    expenses = load_expenses()
    if month:
        expenses = filter_by_month(expenses, month)
    return expenses


@app.get("/expenses/export")
def export_expenses(month: str = Query(..., pattern=MONTH_PATTERN)):
    """Download one month of expenses as CSV"""
    expenses = filter_by_month(load_expenses(), month)
    if not expenses:
        raise HTTPException(status_code=404, detail=f"No expenses to export for {month}")

    content = generate_csv(expenses, load_categories())
    filename = export_filename(month)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/import/upload", response_model=UploadResponse)
async def upload_file(file: UploadFile = File(...)):
    """Upload a CSV file and get a preview with a suggested column mapping"""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    # Check for .csv extension (case-insensitive)
    if not file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=400,
            detail=f"File must be a CSV file with .csv extension. Received: {file.filename}",
        )

    contents = await file.read()
    if not contents.strip():
        raise HTTPException(status_code=400, detail="File is empty")

    try:
        csv_content = contents.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=400,
            detail="File encoding error. Please ensure the file is UTF-8 encoded",
        )

    preview = get_csv_preview_data(csv_content)
    suggested_mapping = suggest_column_mapping(preview)

    try:
        save_import_session(
            {
                "filename": file.filename,
                "csv_content": csv_content,
                "preview": preview.model_dump(),
            }
        )
    except StorageError as e:
        log_event("error", "import.upload_failed", filename=file.filename, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store the uploaded file")

    log_event(
        "info",
        "import.uploaded",
        filename=file.filename,
        delimiter=preview.delimiter,
        total_rows=preview.total_rows,
        has_negative_amounts=preview.has_negative_amounts,
    )

    return UploadResponse(
        message="File uploaded successfully",
        filename=file.filename,
        preview=preview,
        suggested_mapping=suggested_mapping,
    )


def _require_session() -> dict:
    session = load_import_session()
    if not session:
        raise HTTPException(
            status_code=404, detail="No file uploaded. Please upload a CSV first."
        )
    return session


@app.post("/import/parse", response_model=ParseResponse)
def parse_import(request: ParseRequest):
    """Parse the uploaded file with a confirmed column mapping"""
    session = _require_session()
    preview = CsvPreviewData(**session["preview"])
    mapping = request.column_mapping

    if preview.headers and mapping.min_columns() > len(preview.headers):
        raise HTTPException(
            status_code=400,
            detail=f"Column mapping refers to column {mapping.min_columns() - 1}, "
            f"but the file has {len(preview.headers)} columns",
        )

    has_negative_amounts = (
        preview.has_negative_amounts
        if request.has_negative_amounts is None
        else request.has_negative_amounts
    )

    tracer = get_tracer()
    trace = tracer.create_trace(
        "csv_import.parse",
        metadata={"filename": session["filename"], "total_rows": preview.total_rows},
    )

    result = parse_expenses_csv(
        session["csv_content"],
        load_categories(),
        mapping,
        skip_income_transactions=request.skip_income_transactions,
        has_negative_amounts=has_negative_amounts,
    )

    tracer.add_span(
        trace,
        "parse_rows",
        input_text=mapping.model_dump_json(),
        output_text=(
            f"valid={len(result.valid_rows)} errors={len(result.errors)} "
            f"unmatched={len(result.unmatched_categories)} "
            f"skipped_income={result.skipped_income_count}"
        ),
    )
    tracer.end_trace(trace)

    try:
        save_import_session(
            {
                **session,
                "column_mapping": mapping.model_dump(),
                "skip_income_transactions": request.skip_income_transactions,
                "has_negative_amounts": has_negative_amounts,
                "result": result.model_dump(),
            }
        )
    except StorageError as e:
        log_event("error", "import.parse_store_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store the parse result")

    log_event(
        "info",
        "import.parsed",
        filename=session["filename"],
        valid_rows=len(result.valid_rows),
        errors=len(result.errors),
        unmatched_categories=len(result.unmatched_categories),
        skipped_income=result.skipped_income_count,
    )

    return ParseResponse(
        result=result,
        displayed_rows=result.valid_rows[:DISPLAY_ROW_LIMIT],
        hidden_row_count=max(len(result.valid_rows) - DISPLAY_ROW_LIMIT, 0),
        displayed_errors=result.errors[:DISPLAY_ERROR_LIMIT],
        hidden_error_count=max(len(result.errors) - DISPLAY_ERROR_LIMIT, 0),
        displayed_unmatched_categories=result.unmatched_categories[:DISPLAY_UNMATCHED_LIMIT],
        hidden_unmatched_count=max(
            len(result.unmatched_categories) - DISPLAY_UNMATCHED_LIMIT, 0
        ),
    )


def _expand_category_mappings(
    rows: Sequence[ParsedExpenseRow], category_mappings: CategoryMapping
) -> CategoryMapping:
    """
    Give row labels that differ from a resolved label only in case the same resolution.

    Unmatched labels are listed once per case-insensitive group: a mapping
    for "Grocery" also applies to "grocery" rows. A label with its own entry
    keeps that entry.
    """
    folded: Dict[str, Optional[str]] = {}
    for label, resolved_id in category_mappings.items():
        folded.setdefault(label.lower(), resolved_id)

    expanded = dict(category_mappings)
    for row in rows:
        label = row.category_name
        if label and label not in expanded and label.lower() in folded:
            expanded[label] = folded[label.lower()]
    return expanded


@app.post("/import/commit", response_model=CommitResponse)
def commit_import(request: CommitRequest):
    """Resolve categories and store the parsed rows"""
    with _commit_lock:
        session = _require_session()
        if "result" not in session:
            raise HTTPException(
                status_code=400, detail="File has not been parsed. Please confirm the column mapping first."
            )

        result = CsvParseResult(**session["result"])
        if not result.valid_rows:
            raise HTTPException(status_code=400, detail="No valid rows to import")

        categories = load_categories()
        known_ids = {category.id for category in categories}
        unknown_ids = sorted(
            {value for value in request.category_mappings.values() if value and value not in known_ids}
        )
        if unknown_ids:
            raise HTTPException(
                status_code=400, detail=f"Unknown category id: {', '.join(unknown_ids)}"
            )

        tracer = get_tracer()
        trace = tracer.create_trace(
            "csv_import.commit",
            metadata={"filename": session["filename"], "rows": len(result.valid_rows)},
        )

        records = map_rows_to_expenses(
            result.valid_rows,
            categories,
            _expand_category_mappings(result.valid_rows, request.category_mappings),
        )
        tracer.add_span(
            trace,
            "resolve_categories",
            output_text=f"categorized={sum(1 for r in records if r.category_id)}",
        )

        try:
            created = bulk_create_expenses(records)
        except StorageError as e:
            # Session is kept so the commit can be retried without re-parsing
            log_event("error", "import.commit_failed", filename=session["filename"], error=str(e))
            tracer.add_span(trace, "bulk_create", output_text=f"failed: {e}")
            tracer.end_trace(trace)
            raise HTTPException(
                status_code=500, detail="Failed to import expenses. Please try again."
            )

        tracer.add_span(trace, "bulk_create", output_text=f"created={len(created)}")
        tracer.end_trace(trace)

        clear_import_session()

    log_event("info", "import.committed", filename=session["filename"], created=len(created))

    return CommitResponse(
        message=f"Imported {len(created)} expenses", created=len(created)
    )


@app.get("/import", response_model=ImportSessionResponse)
def get_import():
    """Get the state of the import in progress"""
    session = load_import_session()
    if not session:
        return ImportSessionResponse()

    response = ImportSessionResponse(
        filename=session["filename"],
        preview=CsvPreviewData(**session["preview"]),
    )
    if "result" in session:
        result = CsvParseResult(**session["result"])
        response.column_mapping = ColumnMapping(**session["column_mapping"])
        response.valid_row_count = len(result.valid_rows)
        response.error_count = len(result.errors)
        response.unmatched_categories = result.unmatched_categories
        response.skipped_income_count = result.skipped_income_count
    return response


@app.delete("/import")
def discard_import():
    """Discard the import in progress"""
    clear_import_session()
    return {"message": "Import discarded"}
