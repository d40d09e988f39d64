from dataclasses import replace
from typing import List, Optional, Sequence

from .models import ResultRow, TestRow
from .text import leading_float, match_key


def _find(rows: Sequence[ResultRow], name: str, exact: bool = False) -> Optional[int]:
    key = match_key(name)
    for i, row in enumerate(rows):
        if isinstance(row, TestRow) and match_key(row.test_name) == key:
            return i
    if exact:
        return None
    for i, row in enumerate(rows):
        if isinstance(row, TestRow) and key in match_key(row.test_name):
            return i
    return None


def derive_dependent_values(rows: Sequence[ResultRow]) -> List[ResultRow]:
    """Fill calculated results (lipid ratios, eAG, globulin...) from their inputs."""
    out: List[ResultRow] = list(rows)

    def get(*names: str) -> Optional[float]:
        for exact in (True, False):
            for name in names:
                i = _find(out, name, exact=exact)
                if i is not None:
                    value = leading_float(out[i].result)
                    if value is not None:
                        return value
        return None

    def put(names: Sequence[str], value: float, digits: int = 1) -> None:
        text = f"{value:.{digits}f}"
        for name in names:
            i = _find(out, name, exact=True)
            if i is not None:
                out[i] = replace(out[i], result=text)

    def ratio(names: Sequence[str], num: Optional[float], den: Optional[float]) -> None:
        if num is not None and den:
            put(names, num / den)

    # lipid profile
    trig = get("Triglycerides")
    chol = get("Cholesterol,Total", "Total Cholesterol", "Cholesterol Total")
    hdl = get("Cholesterol,HDL", "HDL Cholesterol")
    if trig is not None:
        put(("Cholesterol,VLDL", "VLDL Cholesterol"), trig / 5)
    vldl = get("Cholesterol,VLDL", "VLDL Cholesterol")
    if chol is not None and hdl is not None:
        put(("Non-HDLCholesterol", "Non-HDL Cholesterol"), chol - hdl)
        ratio(("Cholesterol/HDLRatio", "Total Cholesterol/HDL Ratio"), chol, hdl)
        if vldl is not None:
            put(("Cholesterol,LDL", "LDL Cholesterol"), chol - hdl - vldl)
    ldl = get("Cholesterol,LDL", "LDL Cholesterol")
    if ldl is not None and hdl is not None:
        ratio(("LDL/HDLRatio", "LDL/HDL Ratio"), ldl, hdl)
        ratio(("HDL/LDLRatio", "HDL/LDL Ratio"), hdl, ldl)

    # diabetes
    hba1c = get("HbA1c", "Glycosylated Haemoglobin (HbA1c)")
    if hba1c is not None:
        put(("Estimated Average Glucose (eAG)", "eAG"), 28.7 * hba1c - 46.7, digits=0)

    # liver function
    tp = get("TotalProtein.", "Total Protein")
    alb = get("Albumin.", "Albumin")
    if tp is not None and alb is not None:
        glob = round(tp - alb, 1)
        put(("Globulin.", "Globulin"), glob)
        ratio(("Albumin/Globulin", "A/G Ratio"), alb, glob)
    ratio(
        ("SGOT/SGPT",),
        get("Aspartateaminotransferase(AST/SGOT)", "SGOT/AST"),
        get("Alanineaminotransferase(ALT/SGPT)", "SGPT/ALT"),
    )
    return out
