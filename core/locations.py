"""Curated airport/city catalog used to validate codes before any provider call.

Loaded once at import and never mutated afterwards, so concurrent reads need
no locking.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Optional

IATA_CODE = re.compile(r"^[A-Z]{3}$")


@dataclass(frozen=True)
class LocationCode:
    code: str
    city: str
    country: str
    airport: Optional[str] = None
    search_terms: str = ""

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "city": self.city,
            "country": self.country,
            "airport": self.airport,
        }


class LocationCatalog:
    def __init__(self, entries: Iterable[LocationCode]):
        self._entries = tuple(
            LocationCode(
                code=e.code.upper(),
                city=e.city,
                country=e.country,
                airport=e.airport,
                search_terms=(e.search_terms or f"{e.city} {e.country} {e.code}").lower(),
            )
            for e in entries
        )
        self._by_code = {}
        for entry in self._entries:
            self._by_code.setdefault(entry.code, entry)

    def search(self, query: str, limit: int = 10) -> list[LocationCode]:
        """Substring match over the search blob, in catalog order."""
        if not query or len(query.strip()) < 2 or limit <= 0:
            return []
        needle = query.strip().lower()
        results = []
        for entry in self._entries:
            if needle in entry.search_terms:
                results.append(entry)
                if len(results) >= limit:
                    break
        return results

    def by_code(self, code: str) -> Optional[LocationCode]:
        if not code:
            return None
        return self._by_code.get(code.strip().upper())

    def __contains__(self, code: str) -> bool:
        return self.by_code(code) is not None

    def __len__(self) -> int:
        return len(self._entries)


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def is_valid_code_format(code: str) -> bool:
    return bool(IATA_CODE.match(code or ""))


# Secondary airports and terminals that the provider does not accept as hotel city codes
HOTEL_CITY_CODES = {
    "ZVJ": "DXB",  # EK bus station
    "DWC": "DXB",  # Dubai World Central
    "DCG": "DXB",  # Dubai Creek SPB
    "NHD": "DXB",  # Minhad AB
    "DST": "DXB",  # Dubai seaplane terminal
}


def hotel_city_code(code: str) -> tuple[str, bool]:
    """Return (city code for hotel searches, whether a mapping was applied)."""
    normalized = normalize_code(code)
    mapped = HOTEL_CITY_CODES.get(normalized)
    if mapped:
        return mapped, True
    return normalized, False


def _loc(code, city, country, airport, terms):
    return LocationCode(code=code, city=city, country=country, airport=airport, search_terms=terms)


LOCATIONS = [
    # Ghana & West Africa
    _loc("ACC", "Accra", "Ghana", "Kotoka International Airport", "accra ghana kotoka acc west africa"),
    _loc("TKD", "Takoradi", "Ghana", "Takoradi Airport", "takoradi ghana tkd"),
    _loc("KMS", "Kumasi", "Ghana", "Kumasi Airport", "kumasi ghana kms"),
    _loc("TML", "Tamale", "Ghana", "Tamale Airport", "tamale ghana tml"),
    _loc("NYI", "Sunyani", "Ghana", "Sunyani Airport", "sunyani ghana nyi"),
    _loc("LOS", "Lagos", "Nigeria", "Murtala Muhammed Airport", "lagos nigeria los west africa"),
    _loc("ABV", "Abuja", "Nigeria", "Nnamdi Azikiwe Airport", "abuja nigeria abv"),
    _loc("LFW", "Lomé", "Togo", "Gnassingbé Eyadéma International Airport", "lome togo lfw"),
    _loc("COO", "Cotonou", "Benin", "Cadjehoun Airport", "cotonou benin coo"),
    _loc("ABJ", "Abidjan", "Ivory Coast", "Félix-Houphouët-Boigny Airport", "abidjan ivory coast abj"),
    _loc("DSS", "Dakar", "Senegal", "Blaise Diagne Airport", "dakar senegal dss"),
    _loc("BKO", "Bamako", "Mali", "Modibo Keita International Airport", "bamako mali bko"),
    _loc("OAG", "Ouagadougou", "Burkina Faso", "Ouagadougou Airport", "ouagadougou burkina faso oag"),
    _loc("FNA", "Freetown", "Sierra Leone", "Lungi International Airport", "freetown sierra leone fna"),
    _loc("ROB", "Monrovia", "Liberia", "Roberts International Airport", "monrovia liberia rob"),
    _loc("BJL", "Banjul", "Gambia", "Banjul International Airport", "banjul gambia bjl"),
    _loc("OXB", "Bissau", "Guinea-Bissau", "Osvaldo Vieira International Airport", "bissau guinea-bissau oxb"),
    # Arab world & North Africa
    _loc("RAK", "Marrakech", "Morocco", "Menara Airport", "marrakech morocco rak"),
    _loc("CMN", "Casablanca", "Morocco", "Mohammed V Airport", "casablanca morocco cmn"),
    _loc("TUN", "Tunis", "Tunisia", "Carthage Airport", "tunis tunisia tun"),
    _loc("ALG", "Algiers", "Algeria", "Houari Boumediene Airport", "algiers algeria alg"),
    _loc("AMM", "Amman", "Jordan", "Queen Alia Airport", "amman jordan amm"),
    _loc("KWI", "Kuwait City", "Kuwait", "Kuwait International Airport", "kuwait city kwi"),
    _loc("MCT", "Muscat", "Oman", "Muscat International Airport", "muscat oman mct"),
    _loc("BAH", "Manama", "Bahrain", "Bahrain International Airport", "manama bahrain bah"),
    _loc("TLV", "Tel Aviv", "Israel", "Ben Gurion Airport", "tel aviv israel tlv"),
    # Rest of Africa
    _loc("JNB", "Johannesburg", "South Africa", "OR Tambo Airport", "johannesburg south africa jnb"),
    _loc("CPT", "Cape Town", "South Africa", "Cape Town Airport", "cape town south africa cpt"),
    _loc("NBO", "Nairobi", "Kenya", "Jomo Kenyatta Airport", "nairobi kenya nbo"),
    _loc("ADD", "Addis Ababa", "Ethiopia", "Bole Airport", "addis ababa ethiopia add"),
    _loc("CAI", "Cairo", "Egypt", "Cairo International Airport", "cairo egypt cai"),
    _loc("KGL", "Kigali", "Rwanda", "Kigali International Airport", "kigali rwanda kgl"),
    _loc("DAR", "Dar es Salaam", "Tanzania", "Julius Nyerere Airport", "dar es salaam tanzania dar"),
    _loc("EBB", "Entebbe/Kampala", "Uganda", "Entebbe International Airport", "kampala uganda ebb"),
    _loc("HRE", "Harare", "Zimbabwe", "Harare International Airport", "harare zimbabwe hre"),
    _loc("LUN", "Lusaka", "Zambia", "Kenneth Kaunda Airport", "lusaka zambia lun"),
    _loc("LAD", "Luanda", "Angola", "Quatro de Fevereiro Airport", "luanda angola lad"),
    # Canada
    _loc("YYZ", "Toronto", "Canada", "Pearson International Airport", "toronto canada yyz pearson ontario"),
    _loc("YVR", "Vancouver", "Canada", "Vancouver Airport", "vancouver canada yvr british columbia"),
    _loc("YUL", "Montreal", "Canada", "Pierre Elliott Trudeau International Airport", "montreal canada quebec yul"),
    _loc("YQB", "Quebec City", "Canada", "Jean Lesage International Airport", "quebec city canada yqb"),
    _loc("YYC", "Calgary", "Canada", "Calgary International Airport", "calgary canada yyc alberta"),
    _loc("YOW", "Ottawa", "Canada", "Ottawa Macdonald-Cartier International Airport", "ottawa canada yow ontario"),
    _loc("YWG", "Winnipeg", "Canada", "Winnipeg Richardson International Airport", "winnipeg canada manitoba ywg"),
    # United States
    _loc("JFK", "New York", "United States", "JFK International Airport", "new york nyc usa america jfk"),
    _loc("EWR", "Newark/New York", "United States", "Newark Liberty International Airport", "new york nj newark ewr"),
    _loc("IAD", "Washington D.C.", "United States", "Dulles International Airport", "washington dc usa iad"),
    _loc("LAX", "Los Angeles", "United States", "LAX International Airport", "los angeles la california usa lax"),
    _loc("SFO", "San Francisco", "United States", "San Francisco International Airport", "san francisco sfo california"),
    _loc("ORD", "Chicago", "United States", "O'Hare International Airport", "chicago illinois usa ord"),
    _loc("MIA", "Miami", "United States", "Miami International Airport", "miami florida usa mia"),
    _loc("ATL", "Atlanta", "United States", "Atlanta Airport", "atlanta georgia usa atl"),
    _loc("IAH", "Houston", "United States", "George Bush Intercontinental Airport", "houston texas usa iah"),
    _loc("DFW", "Dallas", "United States", "Dallas/Fort Worth International Airport", "dallas texas dfw"),
    _loc("BOS", "Boston", "United States", "Logan International Airport", "boston massachusetts bos"),
    _loc("SEA", "Seattle", "United States", "Seattle-Tacoma International Airport", "seattle washington sea"),
    _loc("PHX", "Phoenix", "United States", "Sky Harbor International Airport", "phoenix arizona phx"),
    # United Kingdom & Europe
    _loc("LHR", "London", "United Kingdom", "Heathrow Airport", "london uk england heathrow lhr"),
    _loc("LGW", "London", "United Kingdom", "Gatwick Airport", "london uk england gatwick lgw"),
    _loc("MAN", "Manchester", "United Kingdom", "Manchester Airport", "manchester uk england man"),
    _loc("CDG", "Paris", "France", "Charles de Gaulle Airport", "paris france cdg"),
    _loc("AMS", "Amsterdam", "Netherlands", "Schiphol Airport", "amsterdam netherlands ams"),
    _loc("FRA", "Frankfurt", "Germany", "Frankfurt Airport", "frankfurt germany fra"),
    _loc("MUC", "Munich", "Germany", "Munich Airport", "munich germany muc"),
    _loc("MAD", "Madrid", "Spain", "Madrid-Barajas Airport", "madrid spain mad"),
    _loc("BCN", "Barcelona", "Spain", "Barcelona Airport", "barcelona spain bcn"),
    _loc("FCO", "Rome", "Italy", "Fiumicino Airport", "rome italy fco"),
    _loc("MXP", "Milan", "Italy", "Malpensa Airport", "milan italy mxp"),
    _loc("ZRH", "Zurich", "Switzerland", "Zurich Airport", "zurich switzerland zrh"),
    _loc("GVA", "Geneva", "Switzerland", "Geneva Airport", "geneva switzerland gva"),
    _loc("VIE", "Vienna", "Austria", "Vienna Airport", "vienna austria vie"),
    _loc("CPH", "Copenhagen", "Denmark", "Copenhagen Airport", "copenhagen denmark cph"),
    _loc("ARN", "Stockholm", "Sweden", "Arlanda Airport", "stockholm sweden arn"),
    _loc("OSL", "Oslo", "Norway", "Oslo Airport", "oslo norway osl"),
    _loc("HEL", "Helsinki", "Finland", "Helsinki Airport", "helsinki finland hel"),
    _loc("LIS", "Lisbon", "Portugal", "Lisbon Airport", "lisbon portugal lis"),
    _loc("ATH", "Athens", "Greece", "Athens International Airport", "athens greece ath"),
    _loc("IST", "Istanbul", "Turkey", "Istanbul Airport", "istanbul turkey ist"),
    _loc("DUB", "Dublin", "Ireland", "Dublin Airport", "dublin ireland dub"),
    _loc("WAW", "Warsaw", "Poland", "Chopin Airport", "warsaw poland waw"),
    _loc("PRG", "Prague", "Czech Republic", "Václav Havel Airport", "prague czech republic prg"),
    _loc("BUD", "Budapest", "Hungary", "Ferenc Liszt Airport", "budapest hungary bud"),
    # Middle East & Asia
    _loc("DXB", "Dubai", "United Arab Emirates", "Dubai International Airport", "dubai uae emirates dxb"),
    _loc("AUH", "Abu Dhabi", "United Arab Emirates", "Abu Dhabi International Airport", "abu dhabi uae emirates auh"),
    _loc("DOH", "Doha", "Qatar", "Hamad Airport", "doha qatar doh"),
    _loc("SIN", "Singapore", "Singapore", "Changi Airport", "singapore sin changi"),
    _loc("HKG", "Hong Kong", "Hong Kong", "Hong Kong Airport", "hong kong hkg"),
    _loc("BKK", "Bangkok", "Thailand", "Suvarnabhumi Airport", "bangkok thailand bkk"),
    _loc("NRT", "Tokyo", "Japan", "Narita International Airport", "tokyo japan narita nrt"),
    _loc("HND", "Tokyo", "Japan", "Haneda Airport", "tokyo japan haneda hnd"),
    _loc("ICN", "Seoul", "South Korea", "Incheon Airport", "seoul south korea icn"),
    _loc("PEK", "Beijing", "China", "Beijing Capital Airport", "beijing china pek"),
    _loc("PVG", "Shanghai", "China", "Pudong International Airport", "shanghai china pvg"),
    _loc("CAN", "Guangzhou", "China", "Baiyun International Airport", "guangzhou china can"),
    _loc("TPE", "Taipei", "Taiwan", "Taoyuan Airport", "taipei taiwan tpe"),
    _loc("DEL", "New Delhi", "India", "Indira Gandhi Airport", "delhi new delhi india del"),
    _loc("BOM", "Mumbai", "India", "Chhatrapati Shivaji Airport", "mumbai bombay india bom"),
    _loc("BLR", "Bengaluru", "India", "Kempegowda International Airport", "bangalore bengaluru india blr"),
    _loc("KUL", "Kuala Lumpur", "Malaysia", "KLIA", "kuala lumpur malaysia kul"),
    _loc("CGK", "Jakarta", "Indonesia", "Soekarno-Hatta Airport", "jakarta indonesia cgk"),
    _loc("MNL", "Manila", "Philippines", "Ninoy Aquino Airport", "manila philippines mnl"),
    _loc("SGN", "Ho Chi Minh City", "Vietnam", "Tan Son Nhat Airport", "ho chi minh saigon vietnam sgn"),
    # Oceania
    _loc("SYD", "Sydney", "Australia", "Sydney Airport", "sydney australia syd"),
    _loc("MEL", "Melbourne", "Australia", "Melbourne Airport", "melbourne australia mel"),
    _loc("BNE", "Brisbane", "Australia", "Brisbane Airport", "brisbane australia bne"),
    _loc("PER", "Perth", "Australia", "Perth Airport", "perth australia per"),
    _loc("AKL", "Auckland", "New Zealand", "Auckland Airport", "auckland new zealand akl"),
    # South America
    _loc("GRU", "São Paulo", "Brazil", "Guarulhos Airport", "sao paulo brazil gru"),
    _loc("GIG", "Rio de Janeiro", "Brazil", "Galeão International Airport", "rio de janeiro brazil gig"),
    _loc("EZE", "Buenos Aires", "Argentina", "Ezeiza Airport", "buenos aires argentina eze"),
    _loc("SCL", "Santiago", "Chile", "Santiago Airport", "santiago chile scl"),
    _loc("BOG", "Bogotá", "Colombia", "El Dorado Airport", "bogota colombia bog"),
    _loc("LIM", "Lima", "Peru", "Jorge Chávez Airport", "lima peru lim"),
    # Caribbean & Central America
    _loc("MEX", "Mexico City", "Mexico", "Mexico City International Airport", "mexico city mexico mex"),
    _loc("CUN", "Cancun", "Mexico", "Cancun International Airport", "cancun mexico cun"),
    _loc("PTY", "Panama City", "Panama", "Tocumen International Airport", "panama city pty"),
    _loc("SJO", "San Jose", "Costa Rica", "Juan Santamaría Airport", "san jose costa rica sjo"),
    _loc("HAV", "Havana", "Cuba", "José Martí International Airport", "havana cuba hav"),
    _loc("KIN", "Kingston", "Jamaica", "Norman Manley Airport", "kingston jamaica kin"),
    # Islands
    _loc("MLE", "Male", "Maldives", "Velana International Airport", "male maldives mle"),
    _loc("MRU", "Port Louis", "Mauritius", "Sir Seewoosagur Ramgoolam Airport", "mauritius port louis mru"),
    _loc("SEZ", "Mahe", "Seychelles", "Seychelles International Airport", "seychelles mahe sez"),
    _loc("DPS", "Bali", "Indonesia", "Ngurah Rai Airport", "bali denpasar indonesia dps"),
]

catalog = LocationCatalog(LOCATIONS)
