"""
PostScript override directive used to pin a document's image resolution.

The directive is prepended to the input document on the Ghostscript command
line. It installs an ``/EndPage`` procedure that emits a ``/DOCINFO`` pdfmark
carrying fixed document metadata, viewer preferences and the distiller
parameters that switch off downsampling and lock every image class to the
target resolution.
"""

from __future__ import annotations

from typing import Dict

MIN_DPI = 72
MAX_DPI = 2400
DEFAULT_DPI = 300

DIRECTIVE_SUFFIX = ".ps"

# Fixed so that outputs are reproducible and carry no authoring metadata
DOCUMENT_INFO: Dict[str, str] = {
    "Title": "Set DPI",
    "Author": "PDF Processor",
    "Creator": "PDF DPI Setter",
    "Producer": "Ghostscript",
    "ModDate": "D:20240214",
    "CreationDate": "D:20240214",
    "Subject": "DPI Modified PDF",
    "Keywords": "DPI, PDF",
}

VIEWER_PREFERENCES: Dict[str, bool] = {
    "DisplayDocTitle": True,
    "HideToolbar": False,
    "HideMenubar": False,
    "HideWindowUI": False,
    "FitWindow": False,
    "CenterWindow": False,
    "ShowPrintDialog": True,
}

_DIRECTIVE_TEMPLATE = """<< /EndPage {{
    2 dict begin
    /pdfmark where {{pop}} {{userdict /pdfmark /cleartomark load put}} ifelse
    [
{document_info}
        /ViewerPreferences <<
{viewer_preferences}
        >>
        /SetDistillerParams <<
            /AutoRotatePages /None
            /ColorImageDownsampleType /None
            /GrayImageDownsampleType /None
            /MonoImageDownsampleType /None
            /ColorImageResolution {dpi}
            /GrayImageResolution {dpi}
            /MonoImageResolution {dpi}
            /DownsampleColorImages false
            /DownsampleGrayImages false
            /DownsampleMonoImages false
            /AutoFilterColorImages false
            /AutoFilterGrayImages false
            /ColorImageFilter /FlateEncode
            /GrayImageFilter /FlateEncode
            /MonoImageFilter /CCITTFaxEncode
            /ColorConversionStrategy /LeaveColorUnchanged
            /PreserveOverprintSettings true
            /UCRandBGInfo /Preserve
            /ParseDSCComments true
            /PreserveCopyPage true
            /CannotEmbedFontPolicy /Warning
        >>
        /DOCINFO pdfmark
    }} stopped cleartomark
    end
    true
}} bind >> setpagedevice
"""


def _ps_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    return f"({escaped})"


def build_override_directive(dpi: int) -> str:
    """
    Render the override directive for a target resolution.

    Args:
        dpi: Target resolution for color, gray and mono images

    Returns:
        PostScript source ready to be written to disk and handed to the engine

    Raises:
        ValueError: If dpi is not an integer within [MIN_DPI, MAX_DPI]
    """
    if isinstance(dpi, bool) or not isinstance(dpi, int):
        raise ValueError(f"DPI must be an integer, got {dpi!r}")
    if not MIN_DPI <= dpi <= MAX_DPI:
        raise ValueError(f"DPI must be between {MIN_DPI} and {MAX_DPI}")

    document_info = "\n".join(f"        /{key} {_ps_string(value)}" for key, value in DOCUMENT_INFO.items())
    viewer_preferences = "\n".join(
        f"            /{key} {'true' if flag else 'false'}" for key, flag in VIEWER_PREFERENCES.items()
    )
    return _DIRECTIVE_TEMPLATE.format(
        document_info=document_info,
        viewer_preferences=viewer_preferences,
        dpi=dpi,
    )
