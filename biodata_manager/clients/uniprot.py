"""UniProtKB REST client and entry metadata extraction."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from biodata_manager.clients.http import RegistryHttpClient
from biodata_manager.models.ids import UniprotId


@dataclass
class FeatureItem:
    name: str
    start: Optional[int] = None
    end: Optional[int] = None
    description: Optional[str] = None
    qualifier: Optional[str] = None


@dataclass
class UniprotFeatures:
    domains: List[FeatureItem] = field(default_factory=list)
    active_sites: List[FeatureItem] = field(default_factory=list)
    binding_sites: List[FeatureItem] = field(default_factory=list)
    ptm: List[FeatureItem] = field(default_factory=list)
    variants: List[FeatureItem] = field(default_factory=list)
    regions: List[FeatureItem] = field(default_factory=list)
    repeats: List[FeatureItem] = field(default_factory=list)
    motifs: List[FeatureItem] = field(default_factory=list)
    signal_peptides: List[FeatureItem] = field(default_factory=list)
    transmembrane: List[FeatureItem] = field(default_factory=list)
    topological_domains: List[FeatureItem] = field(default_factory=list)
    helices: List[FeatureItem] = field(default_factory=list)
    coiled_coils: List[FeatureItem] = field(default_factory=list)
    zinc_fingers: List[FeatureItem] = field(default_factory=list)
    turns: List[FeatureItem] = field(default_factory=list)
    strands: List[FeatureItem] = field(default_factory=list)
    beta_strands: List[FeatureItem] = field(default_factory=list)
    disordered_regions: List[FeatureItem] = field(default_factory=list)
    low_complexity_regions: List[FeatureItem] = field(default_factory=list)
    signal_anchors: List[FeatureItem] = field(default_factory=list)
    transit_peptides: List[FeatureItem] = field(default_factory=list)
    beta_helices: List[FeatureItem] = field(default_factory=list)
    propeptides: List[FeatureItem] = field(default_factory=list)
    initiator_methionines: List[FeatureItem] = field(default_factory=list)
    chains: List[FeatureItem] = field(default_factory=list)
    peptides: List[FeatureItem] = field(default_factory=list)
    mature_chains: List[FeatureItem] = field(default_factory=list)
    propeptide_chains: List[FeatureItem] = field(default_factory=list)
    mature_peptides: List[FeatureItem] = field(default_factory=list)
    propeptide_peptides: List[FeatureItem] = field(default_factory=list)


@dataclass
class UniprotCrossRefs:
    pdb: List[str] = field(default_factory=list)
    ncbi: List[str] = field(default_factory=list)


@dataclass
class UniprotMetadata:
    accession: str
    protein_name: Optional[str] = None
    gene_names: List[str] = field(default_factory=list)
    organism: Optional[str] = None
    sequence_length: Optional[int] = None
    canonical_isoform: bool = True
    isoforms: List[str] = field(default_factory=list)
    features: UniprotFeatures = field(default_factory=UniprotFeatures)
    functions: List[str] = field(default_factory=list)
    diseases: List[str] = field(default_factory=list)
    cross_references: UniprotCrossRefs = field(default_factory=UniprotCrossRefs)
    registry: str = "uniprot"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class UniprotRecord:
    raw_json: Dict[str, Any]
    fasta: str
    metadata: UniprotMetadata


# Feature type -> UniprotFeatures bucket. Chain and Peptide are split below.
FEATURE_BUCKETS: Dict[str, str] = {
    "Domain": "domains",
    "Active site": "active_sites",
    "Binding site": "binding_sites",
    "Modified residue": "ptm",
    "Modified residue (PTM)": "ptm",
    "Glycosylation": "ptm",
    "Lipidation": "ptm",
    "Disulfide bond": "ptm",
    "Cross-link": "ptm",
    "Natural variant": "variants",
    "Sequence variant": "variants",
    "Region": "regions",
    "Repeat": "repeats",
    "Motif": "motifs",
    "Signal peptide": "signal_peptides",
    "Transmembrane": "transmembrane",
    "Topological domain": "topological_domains",
    "Helix": "helices",
    "Coiled coil": "coiled_coils",
    "Zinc finger": "zinc_fingers",
    "Turn": "turns",
    "Strand": "strands",
    "Beta strand": "beta_strands",
    "Intrinsically disordered region": "disordered_regions",
    "Disordered": "disordered_regions",
    "Low complexity": "low_complexity_regions",
    "Signal anchor": "signal_anchors",
    "Transit peptide": "transit_peptides",
    "Beta helix": "beta_helices",
    "Propeptide": "propeptides",
    "Initiator methionine": "initiator_methionines",
}

_SPLIT_FEATURES = {
    "Chain": ("mature_chains", "propeptide_chains", "chains"),
    "Peptide": ("mature_peptides", "propeptide_peptides", "peptides"),
}


def _dig(value: Any, *keys: Any) -> Any:
    for key in keys:
        if isinstance(key, int):
            if not isinstance(value, list) or len(value) <= key:
                return None
        elif not isinstance(value, dict):
            return None
        value = value[key] if isinstance(key, int) else value.get(key)
        if value is None:
            return None
    return value


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def _mentions(item: Dict[str, Any], entry: FeatureItem, keyword: str) -> bool:
    note = item.get("note") or {}
    for text in note.get("texts") or []:
        if keyword in str(text.get("value", "")).lower():
            return True
    if keyword in str(note.get("value", "")).lower():
        return True
    for ref in item.get("featureCrossReferences") or []:
        if keyword in str(ref.get("id", "")).lower():
            return True
        for prop in ref.get("properties") or []:
            if keyword in str(prop.get("value", "")).lower():
                return True
    return bool(entry.description and keyword in entry.description.lower())


def _feature_bucket(item: Dict[str, Any], entry: FeatureItem) -> Optional[str]:
    ftype = entry.name
    if ftype in _SPLIT_FEATURES:
        mature, propeptide, plain = _SPLIT_FEATURES[ftype]
        if _mentions(item, entry, "mature"):
            return mature
        if _mentions(item, entry, "propeptide"):
            return propeptide
        return plain
    return FEATURE_BUCKETS.get(ftype)


def _extract_features(raw: Dict[str, Any]) -> UniprotFeatures:
    features = UniprotFeatures()
    for item in raw.get("features") or []:
        if not isinstance(item, dict):
            continue
        entry = FeatureItem(
            name=str(item.get("type") or ""),
            start=_as_int(_dig(item, "location", "start", "value")),
            end=_as_int(_dig(item, "location", "end", "value")),
            description=item.get("description") or None,
            qualifier=_dig(item, "featureCrossReferences", 0, "id"),
        )
        bucket = _feature_bucket(item, entry)
        if bucket:
            getattr(features, bucket).append(entry)
    return features


def extract_metadata(raw: Dict[str, Any]) -> UniprotMetadata:
    """Summarize a UniProtKB JSON entry."""

    protein_name = _dig(
        raw, "proteinDescription", "recommendedName", "fullName", "value"
    ) or _dig(raw, "proteinDescription", "submissionNames", 0, "fullName", "value")

    gene_names = set()
    for gene in raw.get("genes") or []:
        name = _dig(gene, "geneName", "value")
        if name:
            gene_names.add(name)
        for synonym in gene.get("synonyms") or []:
            if synonym.get("value"):
                gene_names.add(synonym["value"])

    isoforms: List[str] = []
    functions: List[str] = []
    diseases: List[str] = []
    for comment in raw.get("comments") or []:
        kind = comment.get("commentType")
        if kind == "ALTERNATIVE_PRODUCTS":
            for isoform in comment.get("isoforms") or []:
                isoforms.extend(
                    str(value) for value in isoform.get("isoformIds") or []
                )
        elif kind == "FUNCTION":
            functions.extend(
                text["value"]
                for text in comment.get("texts") or []
                if text.get("value")
            )
        elif kind == "CATALYTIC_ACTIVITY":
            reaction = _dig(comment, "reaction", "name")
            if reaction:
                functions.append(reaction)
        elif kind == "DISEASE":
            disease = comment.get("disease") or {}
            name = disease.get("diseaseId")
            description = disease.get("description")
            if name and description:
                diseases.append(f"{name}: {description}")
            elif name or description:
                diseases.append(name or description)

    cross_refs = UniprotCrossRefs()
    for xref in raw.get("uniProtKBCrossReferences") or []:
        database = xref.get("database")
        xref_id = xref.get("id")
        if not xref_id:
            continue
        if database == "PDB":
            cross_refs.pdb.append(xref_id)
        elif database in ("RefSeq", "GeneID"):
            cross_refs.ncbi.append(xref_id)

    canonical = True
    if isoforms:
        canonical = any(isoform.endswith("-1") for isoform in isoforms)

    return UniprotMetadata(
        accession=str(raw.get("primaryAccession") or "unknown"),
        protein_name=protein_name,
        gene_names=sorted(gene_names),
        organism=_dig(raw, "organism", "scientificName"),
        sequence_length=_as_int(_dig(raw, "sequence", "length")),
        canonical_isoform=canonical,
        isoforms=isoforms,
        features=_extract_features(raw),
        functions=functions,
        diseases=diseases,
        cross_references=cross_refs,
    )


class UniprotClient(RegistryHttpClient):
    registry = "uniprot"
    BASE_URL = "https://rest.uniprot.org/uniprotkb"

    def entry_url(self, accession: str, extension: str = "json") -> str:
        return f"{self.BASE_URL}/{accession}.{extension}"

    def fetch(self, uniprot_id: UniprotId) -> UniprotRecord:
        raw = self.get_json(self.entry_url(str(uniprot_id)))
        fasta = self.get(self.entry_url(str(uniprot_id), "fasta")).text
        return UniprotRecord(raw_json=raw, fasta=fasta, metadata=extract_metadata(raw))

    def entry_exists(self, accession: str) -> bool:
        return self.probe(self.entry_url(accession)).ok


__all__ = [
    "FeatureItem",
    "UniprotClient",
    "UniprotCrossRefs",
    "UniprotFeatures",
    "UniprotMetadata",
    "UniprotRecord",
    "extract_metadata",
]
