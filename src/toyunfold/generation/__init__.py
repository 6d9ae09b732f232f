"""Toy event generation: PDF sampling and detector smearing."""

from toyunfold.generation.pdfs import PDF_NAMES, ToyPdf, build_pdf, generate, pdf_histogram
from toyunfold.generation.smearing import DetectorModel

__all__ = [
    "PDF_NAMES",
    "ToyPdf",
    "build_pdf",
    "generate",
    "pdf_histogram",
    "DetectorModel",
]
