"""
Built-in system templates.

System templates have no organization, are readable by every organization
and cannot be edited. Ids are fixed so seeding is an idempotent upsert.
"""
from typing import Any, Optional

from checklist.features.templates.schemas import Section, Template


def _field(type: str, label: str, required: bool = True, **attrs: Any) -> dict:
    config = attrs.pop("config", {})
    return {"type": type, "label": label, "required": required, "config": config, **attrs}


def _section(title: str, fields: list[dict], description: Optional[str] = None) -> dict:
    return {"title": title, "description": description, "fields": fields}


def _build(key: str, name: str, category: str, description: str, icon: str, sections: list[dict]) -> Template:
    """Assign stable ids and 1-based order values to a nested template definition."""
    template_id = f"system-{key}"
    built = []
    for s_index, section in enumerate(sections, start=1):
        section_id = f"{template_id}-s{s_index}"
        fields = [
            {**field, "id": f"{section_id}-f{f_index}", "order": f_index}
            for f_index, field in enumerate(section["fields"], start=1)
        ]
        built.append(Section.model_validate({
            "id": section_id,
            "title": section["title"],
            "description": section["description"],
            "order": s_index,
            "fields": fields,
        }))
    return Template(
        id=template_id,
        organization_id=None,
        name=name,
        category=category,
        description=description,
        icon=icon,
        is_public=True,
        created_by="system",
        sections=built,
    )


VEHICLE_DAILY = _build(
    "vehicle-daily",
    name="Vehicle Daily Checklist",
    category="vehicle",
    description="Complete this checklist before starting your journey to ensure vehicle safety and readiness.",
    icon="🚗",
    sections=[
        _section("Pre-Departure Checks", [
            _field("date", "Inspection Date"),
            _field("text", "Vehicle Registration", placeholder="e.g., ABC-123-GP"),
            _field("number", "Odometer Reading", placeholder="Current mileage", config={"min": 0, "unit": "km"}),
            _field("text", "Driver's Name", placeholder="Full name"),
        ], "Basic safety checks before starting the vehicle"),
        _section("Exterior Inspection", [
            _field("dropdown", "Tyre Condition", config={"options": ["Good", "Fair", "Needs Replacement", "Damaged"]}),
            _field("checkbox", "All lights functioning (headlights, brake lights, indicators)"),
            _field("checkbox", "No visible body damage or leaks", required=False),
            _field("photo", "Vehicle Exterior Photo", required=False,
                   help_text="Take a photo of the vehicle from the front", config={"max_files": 1}),
        ], "Walk-around vehicle exterior checks"),
        _section("Interior & Safety Equipment", [
            _field("checkbox", "Seatbelts working properly"),
            _field("checkbox", "Fire extinguisher present and in date"),
            _field("checkbox", "First aid kit available"),
            _field("dropdown", "Fuel Level", config={"options": ["Full", "3/4", "1/2", "1/4", "Low - Refuel Required"]}),
        ], "Check cabin and safety equipment"),
        _section("Additional Notes", [
            _field("textarea", "Defects or Issues Identified", required=False,
                   placeholder="Describe any problems or maintenance needs...", config={"max_length": 500}),
            _field("dropdown", "Vehicle Fitness for Use",
                   config={"options": ["Fit for Use", "Requires Minor Repairs", "Unsafe - Do Not Use"]}),
        ]),
    ],
)

SOLAR_INSTALLATION = _build(
    "solar-installation",
    name="Solar Installation Checklist",
    category="solar",
    description="Site inspection checklist for solar panel installations and compliance verification.",
    icon="☀️",
    sections=[
        _section("Site Information", [
            _field("date", "Inspection Date"),
            _field("text", "Site Address", placeholder="Full installation address"),
            _field("text", "Client Name"),
            _field("text", "Installation Technician"),
        ]),
        _section("Structural Assessment", [
            _field("dropdown", "Roof Type",
                   config={"options": ["Tile", "Metal Sheeting", "IBR", "Corrugated", "Flat Concrete", "Other"]}),
            _field("dropdown", "Roof Condition",
                   config={"options": ["Excellent", "Good", "Fair", "Poor - Repairs Needed"]}),
            _field("checkbox", "Roof structure can support panel weight"),
            _field("photo", "Roof/Mounting Area Photo", required=False),
        ], "Roof and mounting structure evaluation"),
        _section("Panel Installation", [
            _field("number", "Number of Panels Installed", config={"min": 1, "step": 1}),
            _field("text", "Panel Make and Model", placeholder="e.g., Canadian Solar CS3W-400MS"),
            _field("checkbox", "Panels securely mounted and aligned"),
            _field("checkbox", "All electrical connections properly terminated"),
            _field("photo", "Installed Panels Photo", required=False),
        ]),
        _section("Electrical & Safety", [
            _field("number", "System Voltage (V)", config={"min": 0, "unit": "V"}),
            _field("checkbox", "Inverter installed and functioning"),
            _field("checkbox", "Earthing and surge protection in place"),
            _field("checkbox", "DC and AC isolators clearly labeled"),
            _field("photo", "Inverter & Distribution Board Photo", required=False),
        ]),
        _section("Compliance & Sign-off", [
            _field("checkbox", "Installation complies with SANS 10142-1", help_text="Wiring of premises standard"),
            _field("dropdown", "Certificate of Compliance (CoC) Status",
                   config={"options": ["Issued", "Pending", "Not Required"]}),
            _field("textarea", "Additional Notes", required=False,
                   placeholder="Any observations, client requests, or follow-up required..."),
        ]),
    ],
)

GAS_INSTALLATION = _build(
    "gas-installation",
    name="Gas Installation Checklist",
    category="gas",
    description="Safety and compliance checklist for gas appliance installations (LPG/natural gas).",
    icon="🔥",
    sections=[
        _section("Installation Details", [
            _field("date", "Installation Date"),
            _field("text", "Site Address"),
            _field("text", "Client Name"),
            _field("text", "Registered Gas Practitioner Name"),
            _field("text", "SAQCC Gas Registration Number", placeholder="e.g., GP123456"),
        ]),
        _section("Appliance Information", [
            _field("dropdown", "Appliance Type", config={
                "options": ["Gas Stove", "Gas Geyser", "Gas Heater", "Gas Fireplace", "BBQ/Braai", "Other"],
            }),
            _field("text", "Appliance Make and Model"),
            _field("dropdown", "Gas Type",
                   config={"options": ["LPG (9kg/19kg Bottle)", "LPG (Bulk)", "Natural Gas/Piped"]}),
            _field("photo", "Appliance Photo", required=False),
        ]),
        _section("Installation Checks", [
            _field("checkbox", "Appliance securely fixed and level"),
            _field("checkbox", "Adequate ventilation provided", help_text="As per SANS 10087-1 requirements"),
            _field("checkbox", "Clearances from combustible materials maintained"),
            _field("dropdown", "Pipe Material Used",
                   config={"options": ["Copper", "Stainless Steel Flexible", "CSST", "Black Iron"]}),
            _field("checkbox", "All joints properly sealed and tested"),
        ], "Physical installation verification"),
        _section("Safety & Testing", [
            _field("dropdown", "Leak Test Result", config={"options": [
                "Passed - No Leaks Detected",
                "Failed - Leaks Found and Repaired",
                "Failed - Repairs Required",
            ]}),
            _field("number", "Test Pressure (kPa)", config={"min": 0, "unit": "kPa"}),
            _field("checkbox", "Appliance ignition tested successfully"),
            _field("checkbox", "Flame appearance correct (blue, stable)"),
            _field("checkbox", "Emergency shut-off accessible and labeled"),
        ], "Leak testing and safety verification"),
        _section("Compliance & Documentation", [
            _field("checkbox", "Installation complies with SANS 10087-1",
                   help_text="Installation of gas-consuming equipment"),
            _field("dropdown", "Certificate of Conformity (CoC) Status", config={
                "options": ["Issued to Client", "Will be Issued (pending paperwork)", "Not Applicable"],
            }),
            _field("checkbox", "Client briefed on safe operation and maintenance"),
            _field("textarea", "Additional Notes or Defects", required=False,
                   placeholder="Record any issues, follow-up actions, or client requests..."),
        ]),
    ],
)

SYSTEM_TEMPLATES: list[Template] = [VEHICLE_DAILY, SOLAR_INSTALLATION, GAS_INSTALLATION]
