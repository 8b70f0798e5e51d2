"""
Session report export: one row per staged submission, for sharing
grading progress between graders of the same assignment
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Optional, Sequence

import pandas as pd

from submission_models import SubmissionRecord

logger = logging.getLogger(__name__)

REPORT_COLUMNS = {
    'portion_index': 'Portion',
    'position': 'Position',
    'submission_id': 'Submission_ID',
    'student_name': 'Student_Name',
    'outcome': 'Outcome',
    'detail': 'Detail',
    'matched_files': 'Matched_Files',
    'decision': 'Decision',
    'recorded_at': 'Recorded_At',
}


def export_session_report(records: Sequence[SubmissionRecord], output_format: str = 'xlsx',
                          filename: Optional[str] = None) -> str:
    """
    Export a session's submission records to Excel or CSV

    Args:
        records: Records collected by the session driver
        output_format: 'xlsx' or 'csv'
        filename: Output filename (generated when omitted)

    Returns:
        Path to the exported file
    """
    if not records:
        raise ValueError("No submission records to export.")

    output_format = output_format.lower()
    if output_format not in ('xlsx', 'csv'):
        raise ValueError("Unsupported format. Use 'xlsx' or 'csv'.")

    df = pd.DataFrame([asdict(r) for r in records], columns=list(REPORT_COLUMNS))
    df = df.rename(columns=REPORT_COLUMNS)
    # Positions are shown 1-based, as in the console
    df['Portion'] += 1
    df['Position'] += 1

    if not filename:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f'duckstage_report_{timestamp}.{output_format}'

    if output_format == 'xlsx':
        df.to_excel(filename, index=False)
    else:
        df.to_csv(filename, index=False, encoding='utf-8')

    logger.info(f"Session report exported to {filename}")
    return filename
