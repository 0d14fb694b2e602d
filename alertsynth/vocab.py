"""
Local vocabularies for pool building.

`LOCAL_GENERATORS` are the algorithmic tier (rng driven, no network);
`STATIC_VALUES` are the last tier and never fail. Theme data and a bundled
ATT&CK subset live here as well.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .utils import rand_ipv4, rand_token

# ----------------------------
# Standard pool kinds
# ----------------------------

ALERT_NAME_TEMPLATES = [
    "Suspicious PowerShell Activity Detected",
    "Malware Detection - Endpoint Security",
    "Failed Login Attempts from Multiple IPs",
    "Privilege Escalation Attempt",
    "Suspicious Network Traffic to External Domain",
    "File Integrity Monitoring Alert",
    "Credential Dumping Activity",
    "Process Injection Detected",
    "Unusual Outbound Network Connection",
    "Windows Defender Real-time Protection Disabled",
    "Scheduled Task Created by Unusual Parent",
    "Encoded Command Line Execution",
    "Anomalous Kerberos Ticket Request",
    "Registry Run Key Persistence",
    "Outbound Connection to Rare Domain",
]

_ALERT_QUALIFIERS = ["", " on Domain Controller", " via Office Macro", " from Service Account", " after Hours"]

THREAT_NAMES = ["APT29", "Lazarus", "Cobalt Strike", "Emotet", "Ransomware", "Trojan",
                "Qakbot", "FIN7", "Mimikatz", "PowerShell Empire", "cmd.exe abuse", "IcedID"]

PROCESS_NAMES = ["powershell.exe", "cmd.exe", "rundll32.exe", "svchost.exe", "explorer.exe",
                 "wmic.exe", "regsvr32.exe", "mshta.exe", "certutil.exe", "bash", "python3", "curl"]

REGISTRY_KEYS = [
    "HKLM\\Software\\Microsoft\\Windows\\CurrentVersion\\Run",
    "HKCU\\Software\\Microsoft\\Windows\\CurrentVersion\\Run",
    "HKLM\\System\\CurrentControlSet\\Services",
    "HKLM\\Software\\Microsoft\\Windows\\CurrentVersion\\RunOnce",
    "HKCU\\Software\\Classes\\mscfile\\shell\\open\\command",
]

_FILE_EXTS = ["exe", "dll", "bat", "ps1"]
_FILE_STEMS = ["update", "setup", "invoice", "report", "svc", "helper", "payload", "agent", "loader", "sync"]
_TLDS = ["com", "net", "org", "io", "info", "xyz"]
_DOMAIN_WORDS = ["cdn", "update", "secure", "login", "mail", "cloud", "files", "sync", "portal", "api"]
_URL_PATHS = ["login", "download", "api/v1/upload", "gate.php", "images/logo.png", "update/check", "wp-admin"]

_ACTORS = ["A user", "A service account", "An unsigned binary", "A scheduled task", "A remote session"]
_ACTIONS = ["spawned an encoded shell", "modified a startup registry key", "contacted a rare external domain",
            "read LSASS memory", "disabled endpoint protection", "created a new local administrator",
            "uploaded data to cloud storage", "enumerated domain groups"]
_OUTCOMES = ["shortly after logon.", "outside business hours.", "from an unusual parent process.",
             "after repeated authentication failures.", "matching a known threat signature."]


def alert_names(rng: random.Random, n: int) -> List[str]:
    return [rng.choice(ALERT_NAME_TEMPLATES) + rng.choice(_ALERT_QUALIFIERS) for _ in range(n)]


def _sentence(rng: random.Random) -> str:
    return f"{rng.choice(_ACTORS)} {rng.choice(_ACTIONS)} {rng.choice(_OUTCOMES)}"


def alert_descriptions(rng: random.Random, n: int) -> List[str]:
    return [_sentence(rng) for _ in range(n)]


def threat_names(rng: random.Random, n: int) -> List[str]:
    return [rng.choice(THREAT_NAMES) for _ in range(n)]


def process_names(rng: random.Random, n: int) -> List[str]:
    return [rng.choice(PROCESS_NAMES) for _ in range(n)]


def file_names(rng: random.Random, n: int) -> List[str]:
    return [f"{rng.choice(_FILE_STEMS)}_{rand_token(rng, 4)}.{rng.choice(_FILE_EXTS)}" for _ in range(n)]


def domains(rng: random.Random, n: int) -> List[str]:
    return [f"{rng.choice(_DOMAIN_WORDS)}-{rand_token(rng, 6)}.{rng.choice(_TLDS)}" for _ in range(n)]


def ip_addresses(rng: random.Random, n: int) -> List[str]:
    return [rand_ipv4(rng) for _ in range(n)]


def registry_keys(rng: random.Random, n: int) -> List[str]:
    return [rng.choice(REGISTRY_KEYS) + ("" if rng.random() < 0.5 else "\\" + rand_token(rng, 8)) for _ in range(n)]


def urls(rng: random.Random, n: int) -> List[str]:
    return [f"https://{d}/{rng.choice(_URL_PATHS)}" for d in domains(rng, n)]


def event_descriptions(rng: random.Random, n: int) -> List[str]:
    return [_sentence(rng) for _ in range(n)]


LOCAL_GENERATORS: Dict[str, Callable[[random.Random, int], List[str]]] = {
    "alert_names": alert_names,
    "alert_descriptions": alert_descriptions,
    "threat_names": threat_names,
    "process_names": process_names,
    "file_names": file_names,
    "domains": domains,
    "ip_addresses": ip_addresses,
    "registry_keys": registry_keys,
    "urls": urls,
    "event_descriptions": event_descriptions,
}

STANDARD_KINDS: Tuple[str, ...] = tuple(LOCAL_GENERATORS.keys())

STATIC_VALUES: Dict[str, List[str]] = {
    "alert_names": ALERT_NAME_TEMPLATES[:5],
    "alert_descriptions": ["Security alert raised by detection rule."],
    "threat_names": THREAT_NAMES[:6],
    "process_names": PROCESS_NAMES[:5],
    "file_names": ["update.exe", "helper.dll", "run.bat", "setup.ps1"],
    "domains": ["example.com", "example.net", "example.org"],
    "ip_addresses": ["203.0.113.10", "198.51.100.23", "192.0.2.44"],
    "registry_keys": REGISTRY_KEYS[:3],
    "urls": ["https://example.com/login", "https://example.net/download"],
    "event_descriptions": ["Security event recorded."],
}


# ----------------------------
# Entities
# ----------------------------

FIRST_NAMES = ["alex", "jordan", "taylor", "morgan", "casey", "riley", "sam", "jamie", "drew", "avery",
               "quinn", "reese", "dana", "kim", "lee", "pat"]
LAST_NAMES = ["smith", "johnson", "lee", "garcia", "brown", "martin", "clark", "lopez", "walker", "young",
              "hall", "allen", "wright", "scott", "green", "baker"]
DEPARTMENTS = ["fin", "hr", "eng", "ops", "sales", "it", "sec", "mkt"]
ENVIRONMENTS = ["prod", "dev", "stg", "qa"]


def entity_usernames(rng: random.Random, n: int) -> List[str]:
    return [f"{rng.choice(FIRST_NAMES)}.{rng.choice(LAST_NAMES)}" for _ in range(n)]


def entity_hostnames(rng: random.Random, n: int) -> List[str]:
    return [f"{rng.choice(DEPARTMENTS)}-{rng.choice(ENVIRONMENTS)}-{rng.randint(1, 99):02d}" for _ in range(n)]


# ----------------------------
# Themes
# ----------------------------

THEME_KINDS = ("usernames", "hostnames", "organization_names", "application_names")

THEME_DATA: Dict[str, Dict[str, List[str]]] = {
    "nba": {
        "usernames": ["lebron.james", "stephen.curry", "kevin.durant", "giannis.antetokounmpo", "luka.doncic",
                      "nikola.jokic", "jayson.tatum", "joel.embiid"],
        "hostnames": ["lakers-web-01", "warriors-db-02", "celtics-app-03", "bucks-dc-01", "nuggets-mail-01",
                      "heat-vpn-02"],
        "organization_names": ["Los Angeles Lakers", "Golden State Warriors", "Boston Celtics", "Milwaukee Bucks"],
        "application_names": ["courtside-portal", "playbook-api", "ticketing-service", "scouting-db"],
    },
    "marvel": {
        "usernames": ["tony.stark", "steve.rogers", "natasha.romanoff", "bruce.banner", "peter.parker",
                      "wanda.maximoff", "thor.odinson"],
        "hostnames": ["stark-lab-01", "shield-hq-02", "avengers-db-01", "wakanda-web-03", "asgard-dc-01"],
        "organization_names": ["Stark Industries", "S.H.I.E.L.D.", "Avengers Initiative", "Wakanda Design Group"],
        "application_names": ["jarvis", "friday-assistant", "helicarrier-ops", "vibranium-tracker"],
    },
    "starwars": {
        "usernames": ["luke.skywalker", "leia.organa", "han.solo", "obi.kenobi", "ahsoka.tano", "lando.calrissian"],
        "hostnames": ["tatooine-web-01", "hoth-db-02", "endor-app-01", "coruscant-dc-01", "yavin-vpn-01"],
        "organization_names": ["Rebel Alliance", "Jedi Order", "Galactic Senate", "Mos Eisley Traders"],
        "application_names": ["holonet", "astromech-control", "hyperdrive-planner", "cantina-pos"],
    },
    "tech_companies": {
        "usernames": ["ada.lovelace", "grace.hopper", "alan.turing", "linus.torvalds", "margaret.hamilton"],
        "hostnames": ["build-ci-01", "search-api-02", "cloud-edge-03", "mail-relay-01", "k8s-node-07"],
        "organization_names": ["Initech", "Globex Corporation", "Hooli", "Pied Piper", "Massive Dynamic"],
        "application_names": ["payroll-service", "identity-gateway", "analytics-pipeline", "crm-portal"],
    },
}


def theme_values(rng: random.Random, theme: str, kind: str, n: int) -> List[str]:
    """Theme data for `kind`, cycled to `n` values; unknown themes are derived from the theme word."""
    data = THEME_DATA.get(theme.lower())
    if data is not None:
        source = data[kind]
        return [source[i % len(source)] for i in range(n)]
    word = "".join(ch for ch in theme.lower().replace(" ", "_") if ch.isalnum() or ch == "_") or "theme"
    if kind == "usernames":
        return [f"{word}.{rng.choice(LAST_NAMES)}{i}" for i in range(n)]
    if kind == "hostnames":
        return [f"{word}-{rng.choice(ENVIRONMENTS)}-{i + 1:02d}" for i in range(n)]
    if kind == "organization_names":
        return [f"{word.replace('_', ' ').title()} {suffix}" for suffix in ("Group", "Labs", "Holdings", "Partners")][:max(1, n)]
    return [f"{word}-{rand_token(rng, 4)}-service" for _ in range(n)]


# ----------------------------
# Technique taxonomy
# ----------------------------

@dataclass(frozen=True)
class Tactic:
    id: str
    name: str

    @property
    def reference(self) -> str:
        return f"https://attack.mitre.org/tactics/{self.id}/"


@dataclass(frozen=True)
class Technique:
    id: str
    name: str
    tactic_ids: Tuple[str, ...]

    @property
    def reference(self) -> str:
        return f"https://attack.mitre.org/techniques/{self.id.replace('.', '/')}/"


TACTICS: Dict[str, Tactic] = {t.id: t for t in [
    Tactic("TA0001", "Initial Access"),
    Tactic("TA0002", "Execution"),
    Tactic("TA0003", "Persistence"),
    Tactic("TA0004", "Privilege Escalation"),
    Tactic("TA0005", "Defense Evasion"),
    Tactic("TA0006", "Credential Access"),
    Tactic("TA0007", "Discovery"),
    Tactic("TA0008", "Lateral Movement"),
    Tactic("TA0009", "Collection"),
    Tactic("TA0010", "Exfiltration"),
    Tactic("TA0011", "Command and Control"),
    Tactic("TA0040", "Impact"),
]}

TECHNIQUES: Dict[str, Technique] = {t.id: t for t in [
    Technique("T1566", "Phishing", ("TA0001",)),
    Technique("T1566.001", "Spearphishing Attachment", ("TA0001",)),
    Technique("T1190", "Exploit Public-Facing Application", ("TA0001",)),
    Technique("T1078", "Valid Accounts", ("TA0001", "TA0003", "TA0004", "TA0005")),
    Technique("T1059", "Command and Scripting Interpreter", ("TA0002",)),
    Technique("T1059.001", "PowerShell", ("TA0002",)),
    Technique("T1059.003", "Windows Command Shell", ("TA0002",)),
    Technique("T1204", "User Execution", ("TA0002",)),
    Technique("T1053", "Scheduled Task/Job", ("TA0002", "TA0003", "TA0004")),
    Technique("T1547.001", "Registry Run Keys / Startup Folder", ("TA0003", "TA0004")),
    Technique("T1543.003", "Windows Service", ("TA0003", "TA0004")),
    Technique("T1055", "Process Injection", ("TA0004", "TA0005")),
    Technique("T1548.002", "Bypass User Account Control", ("TA0004", "TA0005")),
    Technique("T1562.001", "Disable or Modify Tools", ("TA0005",)),
    Technique("T1070.004", "File Deletion", ("TA0005",)),
    Technique("T1027", "Obfuscated Files or Information", ("TA0005",)),
    Technique("T1003.001", "LSASS Memory", ("TA0006",)),
    Technique("T1110", "Brute Force", ("TA0006",)),
    Technique("T1087", "Account Discovery", ("TA0007",)),
    Technique("T1082", "System Information Discovery", ("TA0007",)),
    Technique("T1021.001", "Remote Desktop Protocol", ("TA0008",)),
    Technique("T1021.002", "SMB/Windows Admin Shares", ("TA0008",)),
    Technique("T1005", "Data from Local System", ("TA0009",)),
    Technique("T1041", "Exfiltration Over C2 Channel", ("TA0010",)),
    Technique("T1567.002", "Exfiltration to Cloud Storage", ("TA0010",)),
    Technique("T1071.001", "Web Protocols", ("TA0011",)),
    Technique("T1105", "Ingress Tool Transfer", ("TA0011",)),
    Technique("T1486", "Data Encrypted for Impact", ("TA0040",)),
    Technique("T1490", "Inhibit System Recovery", ("TA0040",)),
]}

STATIC_TACTIC_NAMES = ["Initial Access", "Execution", "Persistence", "Privilege Escalation"]


def select_techniques(rng: random.Random, n: int, tactic_ids: Optional[List[str]] = None) -> List[Technique]:
    pool = [t for t in TECHNIQUES.values() if not tactic_ids or set(t.tactic_ids) & set(tactic_ids)]
    if not pool:
        return []
    return rng.sample(pool, min(n, len(pool)))
