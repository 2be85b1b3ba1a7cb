"""Built-in painting catalog and source-reference resolution.

Role in pipeline:
    `service.generate` calls `resolve_source_url` before submission so the remote
    service always receives an absolute URL. Resolution is purely local: catalog
    paintings are static assets served from `PAINTINGS_BASE_URL`, and anything
    that is already an http(s) URL (for example an uploaded asset) passes through.
"""

from dataclasses import asdict, dataclass
from urllib.parse import quote, urljoin, urlparse

from artbreaker.image.provider_config import PAINTINGS_BASE_URL


@dataclass(frozen=True)
class Painting:
    id: str
    title: str
    artist: str
    filename: str
    description: str
    period: str

    def to_dict(self, base_url: str = PAINTINGS_BASE_URL) -> dict:
        data = asdict(self)
        data["url"] = resolve_source_url(self.filename, base_url)
        return data


PAINTINGS = (
    Painting(
        "mona-lisa", "Mona Lisa", "Leonardo da Vinci",
        "mona_lisa_leonardo_da_vinci_high_quality_painting.jpg",
        "The world's most famous portrait, known for its enigmatic smile",
        "Renaissance",
    ),
    Painting(
        "starry-night", "The Starry Night", "Vincent van Gogh",
        "vincent_van_gogh_starry_night_painting_high_resolution.jpg",
        "An expressionist masterpiece of swirling brushwork",
        "Post-Impressionism",
    ),
    Painting(
        "girl-pearl-earring", "Girl with a Pearl Earring", "Johannes Vermeer",
        "girl_with_pearl_earring_johannes_vermeer_painting_high_quality.jpg",
        "A luminous tronie lit against a dark background",
        "Baroque",
    ),
    Painting(
        "great-wave", "The Great Wave off Kanagawa", "Katsushika Hokusai",
        "the_great_wave_off_kanagawa_hokusai_japanese_art.jpg",
        "A woodblock print of a towering wave above boats",
        "Edo period",
    ),
    Painting(
        "american-gothic", "American Gothic", "Grant Wood",
        "american_gothic_grant_wood_painting.jpg",
        "A farmer and his daughter before a Gothic-window farmhouse",
        "Modernism",
    ),
    Painting(
        "the-scream", "The Scream", "Edvard Munch",
        "the_scream_edvard_munch_painting_high_quality.jpg",
        "An agonized figure beneath a blood-red sky",
        "Expressionism",
    ),
    Painting(
        "las-meninas", "Las Meninas", "Diego Velázquez",
        "las_meninas_diego_velazquez_painting_high_quality.jpg",
        "A court scene that turns the viewer into its subject",
        "Baroque",
    ),
    Painting(
        "birth-of-venus", "The Birth of Venus", "Sandro Botticelli",
        "The_Birth_of_Venus_Sandro_Botticelli_Painting.jpg",
        "Venus arriving at the shore on a scallop shell",
        "Renaissance",
    ),
    Painting(
        "persistence-memory", "The Persistence of Memory", "Salvador Dalí",
        "the_persistence_of_memory_salvador_dali_painting.jpeg",
        "Melting clocks in a dreamlike landscape",
        "Surrealism",
    ),
    Painting(
        "guernica", "Guernica", "Pablo Picasso",
        "Guernica_Pablo_Picasso_painting_high_resolution_monochrome.jpg",
        "A monochrome protest against the bombing of Guernica",
        "Cubism",
    ),
)

_BY_ID = {painting.id: painting for painting in PAINTINGS}


def get_painting(painting_id: str) -> Painting | None:
    return _BY_ID.get(painting_id)


def is_remote_url(ref: str) -> bool:
    return urlparse(ref).scheme in ("http", "https")


def resolve_source_url(ref: str, base_url: str = PAINTINGS_BASE_URL) -> str:
    """Turn a source reference into an absolute URL without touching the network.

    Args:
        ref: Absolute URL, catalog painting id, or painting file name.
        base_url: Location catalog files are served from.

    Returns:
        Absolute URL suitable for the `inputImage` submission field.

    Raises:
        ValueError: for an empty reference.
    """
    ref = (ref or "").strip()
    if not ref:
        raise ValueError("A source image reference is required")

    if is_remote_url(ref):
        return ref

    painting = _BY_ID.get(ref)
    filename = painting.filename if painting else ref.lstrip("/")

    if not base_url.endswith("/"):
        base_url += "/"
    return urljoin(base_url, quote(filename))
