"""
tables.py - Static Lookup Tables

Element maps, trigrams, the 64 hexagram names, harmony classes, numerology
boosts, verdict phrases and poem pools. Pure data, no behavior. Every table
is immutable (tuples, frozensets, MappingProxyType) and built once at import.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

# =============================================================================
# FIVE ELEMENTS
# =============================================================================

# Canonical iteration order; also the tie-break order for the dominant element
ELEMENT_ORDER: Tuple[str, ...] = ("wood", "fire", "earth", "metal", "water")

STEM_WEIGHT = 1.35
BRANCH_WEIGHT = 1.0

STEM_ELEMENT: Mapping[str, str] = MappingProxyType({
    "甲": "wood", "乙": "wood",
    "丙": "fire", "丁": "fire",
    "戊": "earth", "己": "earth",
    "庚": "metal", "辛": "metal",
    "壬": "water", "癸": "water",
})

BRANCH_ELEMENT: Mapping[str, str] = MappingProxyType({
    "子": "water", "丑": "earth", "寅": "wood", "卯": "wood",
    "辰": "earth", "巳": "fire", "午": "fire", "未": "earth",
    "申": "metal", "酉": "metal", "戌": "earth", "亥": "water",
})

# Flow coefficients used by the time scorer
ELEMENT_FLOW: Mapping[str, float] = MappingProxyType({
    "wood": 0.9, "fire": 1.05, "earth": 0.85, "metal": 1.0, "water": 0.95,
})


# =============================================================================
# TRIGRAMS AND HEXAGRAMS
# =============================================================================

@dataclass(frozen=True)
class Trigram:
    key: str
    name: str
    lines: Tuple[int, int, int]
    element: str


# Indexed 1..8
TRIGRAMS: Mapping[int, Trigram] = MappingProxyType({
    1: Trigram("qian", "乾", (1, 1, 1), "metal"),
    2: Trigram("dui", "兑", (1, 1, 0), "metal"),
    3: Trigram("li", "离", (1, 0, 1), "fire"),
    4: Trigram("zhen", "震", (1, 0, 0), "wood"),
    5: Trigram("xun", "巽", (0, 1, 1), "wood"),
    6: Trigram("kan", "坎", (0, 1, 0), "water"),
    7: Trigram("gen", "艮", (0, 0, 1), "earth"),
    8: Trigram("kun", "坤", (0, 0, 0), "earth"),
})

# King Wen order, looked up by (upper - 1) * 8 + (lower - 1)
HEXAGRAM_NAMES: Tuple[str, ...] = (
    "乾为天", "坤为地", "水雷屯", "山水蒙", "水天需", "天水讼", "地水师", "水地比",
    "风天小畜", "天泽履", "地天泰", "天地否", "天火同人", "火天大有", "地山谦", "雷地豫",
    "泽雷随", "山风蛊", "地泽临", "风地观", "火雷噬嗑", "山火贲", "山地剥", "地雷复",
    "天雷无妄", "山天大畜", "山雷颐", "泽风大过", "坎为水", "离为火", "泽山咸", "雷风恒",
    "天山遁", "雷天大壮", "火地晋", "地火明夷", "风火家人", "火泽睽", "水山蹇", "雷水解",
    "山泽损", "风雷益", "泽天夬", "天风姤", "泽地萃", "地风升", "泽水困", "水风井",
    "泽火革", "火风鼎", "震为雷", "艮为山", "风山渐", "雷泽归妹", "雷火丰", "火山旅",
    "巽为风", "兑为泽", "风水涣", "水泽节", "风泽中孚", "雷山小过", "水火既济", "火水未济",
)

HEXAGRAM_FALLBACK = "未济"

# Harmony classes; every other name gets the neutral value
HARMONIOUS_HEXAGRAMS = frozenset({"乾为天", "坤为地", "地天泰", "风天小畜", "风雷益", "水火既济"})
INHARMONIOUS_HEXAGRAMS = frozenset({"天地否", "泽天夬", "泽水困", "水山蹇", "火水未济"})

HARMONY_HIGH = 1.0
HARMONY_LOW = 0.18
HARMONY_NEUTRAL = 0.6


# =============================================================================
# NUMEROLOGY
# =============================================================================

# Indexed by a digital root 0..9
LIFE_BOOST: Tuple[float, ...] = (0.5, 0.68, 0.62, 0.72, 0.58, 0.66, 0.7, 0.6, 0.74, 0.64)
INQUIRY_TILT: Tuple[float, ...] = (0.5, 0.7, 0.6, 0.76, 0.58, 0.64, 0.72, 0.62, 0.74, 0.66)
BRIDGE_BOOST: Tuple[float, ...] = (0.5, 0.66, 0.6, 0.7, 0.58, 0.64, 0.72, 0.62, 0.76, 0.68)
NUMEROLOGY_DEFAULT = 0.62


# =============================================================================
# VERDICTS AND POEMS
# =============================================================================

VERDICT_GREAT_SWIFT = "大吉，宜速战"
VERDICT_GREAT_RIDE = "大吉，乘势行"
VERDICT_GOOD_ACT = "吉，宜主动"
VERDICT_GOOD_STEADY = "吉，稳中进"
VERDICT_FLAT_WAIT = "平，待时机"
VERDICT_FLAT_WATCH = "平，宜观望"
VERDICT_ILL_STILL = "凶，宜守静"
VERDICT_ILL_CAREFUL = "凶，慎言行"

VERDICTS: Tuple[str, ...] = (
    VERDICT_GREAT_SWIFT, VERDICT_GREAT_RIDE,
    VERDICT_GOOD_ACT, VERDICT_GOOD_STEADY,
    VERDICT_FLAT_WAIT, VERDICT_FLAT_WATCH,
    VERDICT_ILL_STILL, VERDICT_ILL_CAREFUL,
)

POEM_FALLBACK = "静观其变，勿急于名。"

BASE_POEMS: Tuple[str, ...] = (
    "灯火未明，先守一息。",
    "风起于青萍之末，势成于无声。",
    "一步不让，万步皆空。",
    "欲速不达，欲稳则成。",
    "天机不语，唯人自知。",
    "行到水穷处，坐看云起时。",
    "心有霓虹，脚踏尘埃。",
    "算法在走，命数在变。",
)

VERDICT_POEMS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    VERDICT_GREAT_SWIFT: ("雷动而行，勿失其时。", "今夜金光落指尖，明日可定乾坤。", "乘势而起，一击即中。"),
    VERDICT_GREAT_RIDE: ("顺风不等人，起念便成章。", "势来如潮，踏浪而上。", "大道已开，莫问归期。"),
    VERDICT_GOOD_ACT: ("先声夺人，后势自稳。", "心定则锋利，出手见分晓。", "一步先，步步先。"),
    VERDICT_GOOD_STEADY: ("以稳为刃，切开迷雾。", "慢半拍，反得全局。", "稳住气口，再推一寸。"),
    VERDICT_FLAT_WAIT: ("不争一时，争一势。", "此刻宜藏锋，待明日亮刃。", "按下暂停，胜过盲冲。"),
    VERDICT_FLAT_WATCH: ("观其变，守其正。", "风未定，先系好舟。", "静看局面，自有落点。"),
    VERDICT_ILL_STILL: ("退一步不是输，是换命。", "此局不宜硬碰，宜断舍离。", "守住底线，即是转机。"),
    VERDICT_ILL_CAREFUL: ("口为祸门，心为护符。", "慎言可保身，慎行可保局。", "少说一句，多留一线。"),
})

ELEMENT_POEMS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "wood": ("青木藏锋，先长根再发芽。", "枝叶向上，先稳土再逐风。"),
    "fire": ("火候未足，先蓄热再点燃。", "光可照路，亦可灼人。"),
    "earth": ("厚土不语，能载万物亦能埋雷。", "稳住重心，天地自宽。"),
    "metal": ("金刃需磨，先正其锋再断其物。", "冷光一闪，胜过百句豪言。"),
    "water": ("水善利万物而不争，绕开即是胜。", "深水不响，急流最险。"),
})
