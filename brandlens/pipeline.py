"""End-to-end brand analysis: extraction, aggregation, synthesis and review."""

import logging
import mimetypes
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from .aggregator import aggregate, collect_assets
from .asset_classifier import IMAGE_EXTENSIONS
from .exceptions import NoAnalyzableFiles, UnsupportedDocument
from .media_analyzers import DocumentAnalyzer, ImageAnalyzer, observation_from_output
from .models import AnalysisConfig, AnalysisResult, AnalysisStatus, DocumentKind, DocumentObservation, FileError
from .ooxml_extractor import OOXMLExtractor
from .review import partition
from .rule_repository import BrandRuleRepository
from .rule_synthesizer import RuleSynthesizer

logger = logging.getLogger(__name__)

PRESENTATION_EXTENSIONS = ("pptx", "ppt", "potx")
PDF_EXTENSIONS = ("pdf",)

EXTRACTION_PROGRESS_SHARE = 80

ProgressCallback = Callable[[int], None]


@dataclass
class InputDocument:
    """A document submitted for analysis."""

    filename: str
    data: bytes
    mime_type: Optional[str] = None


def document_kind(filename: str) -> Optional[DocumentKind]:
    """Analyzer family for a filename, or None if the extension is unsupported."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension in PRESENTATION_EXTENSIONS:
        return DocumentKind.PRESENTATION
    if extension in PDF_EXTENSIONS:
        return DocumentKind.PDF
    if extension in IMAGE_EXTENSIONS:
        return DocumentKind.IMAGE
    return None


class BrandAnalyzer:
    """Runs the brand inference pipeline over a batch of documents."""

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        pdf_analyzer: Optional[DocumentAnalyzer] = None,
        image_analyzer: Optional[DocumentAnalyzer] = None
    ):
        """
        Initialize the analyzer.

        Args:
            config: Analysis configuration
            pdf_analyzer: Optional PDF collaborator; without one PDFs are reported as unsupported
            image_analyzer: Image collaborator, defaults to the Pillow-based ImageAnalyzer
        """
        self.config = config or AnalysisConfig()
        self.extractor = OOXMLExtractor()
        self.pdf_analyzer = pdf_analyzer
        self.image_analyzer = image_analyzer or ImageAnalyzer()
        self.synthesizer = RuleSynthesizer(self.config)

    def analyze_document(self, document: InputDocument) -> DocumentObservation:
        """
        Extract the observation of a single document.

        Raises:
            InvalidContainer: If a presentation is not a ZIP package
            DecodeError: If an image cannot be decoded
            UnsupportedDocument: If no analyzer handles the document type
        """
        kind = document_kind(document.filename)

        if kind == DocumentKind.PRESENTATION:
            return self.extractor.extract(document.data, document.filename)
        if kind == DocumentKind.PDF:
            if self.pdf_analyzer is None:
                raise UnsupportedDocument(f"No PDF analyzer registered for {document.filename}")
            return observation_from_output(self.pdf_analyzer.analyze(document.filename, document.data))
        if kind == DocumentKind.IMAGE:
            return observation_from_output(self.image_analyzer.analyze(document.filename, document.data))

        raise UnsupportedDocument(f"Unsupported file type: {document.filename}")

    def analyze(
        self,
        documents: Iterable[InputDocument],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AnalysisResult:
        """
        Analyze a batch of documents and synthesize brand rules.

        Documents are extracted concurrently; aggregation happens afterwards in
        input order. A failing document is reported in ``errors`` and does not
        stop the batch.

        Args:
            documents: Documents to analyze
            on_progress: Called with a 0-100 percentage after each document and after synthesis
            cancel_event: When set, documents not yet started are skipped

        Returns:
            AnalysisResult with confirmed rules, rules needing review, assets and per-file errors

        Raises:
            NoAnalyzableFiles: If no document has a supported extension
        """
        documents = list(documents)
        supported = [doc for doc in documents if document_kind(doc.filename) is not None]
        skipped = [doc.filename for doc in documents if document_kind(doc.filename) is None]

        if not supported:
            raise NoAnalyzableFiles([doc.filename for doc in documents])
        if skipped:
            logger.info(f"Skipping unsupported files: {skipped}")

        progress = _ProgressReporter(on_progress)
        observations: Dict[int, DocumentObservation] = {}
        errors: List[FileError] = []
        cancelled: List[int] = []

        workers = max(1, min(len(supported), self.config.max_workers))
        logger.info(f"Analyzing {len(supported)} documents with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="brandlens") as executor:
            futures: Dict[Future, int] = {
                executor.submit(self.analyze_document, doc): index
                for index, doc in enumerate(supported)
            }
            if cancel_event is not None and cancel_event.is_set():
                _cancel_pending(futures)

            completed = 0
            for future in as_completed(futures):
                index = futures[future]
                document = supported[index]

                if future.cancelled():
                    cancelled.append(index)
                    continue

                try:
                    observations[index] = future.result()
                except Exception as e:
                    logger.error(f"Error analyzing {document.filename}: {e}")
                    errors.append(FileError(
                        filename=document.filename,
                        error_type=type(e).__name__,
                        message=str(e),
                    ))

                completed += 1
                progress.report(round(completed / len(supported) * EXTRACTION_PROGRESS_SHARE))

                if cancel_event is not None and cancel_event.is_set():
                    _cancel_pending(futures)

        if cancelled:
            logger.info(f"Cancelled {len(cancelled)} documents before extraction")

        ordered = [observations[index] for index in sorted(observations)]
        signal = aggregate(ordered, self.config)
        rules = self.synthesizer.synthesize(signal)
        buckets = partition(rules, self.config)

        progress.report(100)

        return AnalysisResult(
            rules=buckets.confirmed,
            needs_review=buckets.needs_review,
            extracted_assets=collect_assets(signal),
            errors=errors,
            skipped=skipped,
            cancelled=[supported[index].filename for index in sorted(cancelled)],
        )

    def analyze_paths(
        self,
        paths: Iterable[Union[str, Path]],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AnalysisResult:
        """
        Read files from disk and analyze them. Unreadable files become per-file errors.

        Raises:
            NoAnalyzableFiles: If no path has a supported extension
        """
        documents = []
        read_errors = []
        paths = [Path(path) for path in paths]

        if all(document_kind(path.name) is None for path in paths):
            raise NoAnalyzableFiles([path.name for path in paths])

        for path in paths:
            try:
                data = path.read_bytes()
            except OSError as e:
                logger.error(f"Could not read {path}: {e}")
                read_errors.append(FileError(filename=path.name, error_type=type(e).__name__, message=str(e)))
                continue
            documents.append(InputDocument(path.name, data, mimetypes.guess_type(path.name)[0]))

        if all(document_kind(doc.filename) is None for doc in documents):
            # Every supported file failed to read
            _ProgressReporter(on_progress).report(100)
            return AnalysisResult(errors=read_errors, skipped=[doc.filename for doc in documents])

        result = self.analyze(documents, on_progress=on_progress, cancel_event=cancel_event)
        if read_errors:
            result = result.model_copy(update={"errors": read_errors + result.errors})
        return result

    def analyze_into_repository(
        self,
        repository: BrandRuleRepository,
        brand_id: str,
        documents: Iterable[InputDocument],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AnalysisResult:
        """Analyze documents and store every surfaced rule for a brand, pending review."""
        previous_status = repository.get_status(brand_id)
        repository.set_status(brand_id, AnalysisStatus.ANALYZING)

        try:
            result = self.analyze(documents, on_progress=on_progress, cancel_event=cancel_event)
        except NoAnalyzableFiles:
            repository.set_status(brand_id, previous_status)
            raise

        repository.set_rules(brand_id, result.all_rules, result.extracted_assets)
        return result


class _ProgressReporter:
    """Forwards monotonic progress to a user callback, ignoring callback failures."""

    def __init__(self, callback: Optional[ProgressCallback]):
        self.callback = callback
        self.last = -1

    def report(self, percent: int) -> None:
        if self.callback is None or percent < self.last:
            return
        self.last = percent
        try:
            self.callback(percent)
        except Exception as e:
            logger.warning(f"Progress callback failed at {percent}%: {e}")


def _cancel_pending(futures: Dict[Future, int]) -> None:
    for future in futures:
        future.cancel()
