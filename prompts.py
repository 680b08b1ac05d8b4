# Prompt enviado ao oráculo semântico. {{SAMPLE}} recebe a amostra em JSON.

DOMAIN_VALIDATION_PROMPT = """Please analyze this data structure and determine if it appears to be host scan data (for example a Censys host export):

Data Structure:
{{SAMPLE}}

This is the structure of valid host scan data. Not all fields are required, but typical host scan data includes fields like
"services", "location", "autonomous_system", and "dns". The data should be consistent with network and security-related information:
{
  "metadata": {
    "description": "Host data collection",
    "created_at": "2024-01-01",
    "data_sources": ["data_source"],
    "hosts_count": 1,
    "ips_analyzed": ["xxx.xxx.xxx.xxx"]
  },
  "hosts": [
    {
      "ip": "xxx.xxx.xxx.xxx",
      "location": {
        "city": "city",
        "country": "country",
        "country_code": "XX",
        "coordinates": {
          "latitude": 0.0,
          "longitude": 0.0
        }
      },
      "autonomous_system": {
        "asn": 12345,
        "name": "organization name",
        "country_code": "XX"
      },
      "services": [
        {
          "port": 1234,
          "protocol": "protocol",
          "banner": "service banner text",
          "software": [
            {
              "product": "software",
              "vendor": "vendor",
              "version": "1.0"
            }
          ],
          "vulnerabilities": [
            {
              "cve_id": "CVE-YYYY-NNNN",
              "severity": "level",
              "cvss_score": 0.0,
              "description": "vulnerability description"
            }
          ]
        }
      ],
      "threat_intelligence": {
        "security_labels": ["label"],
        "risk_level": "level"
      }
    }
  ]
}

Please respond with a JSON object containing:
{
  "isDomainData": boolean,
  "confidence": number (0-1),
  "reasoning": "explanation of your analysis",
  "identifiedFields": ["list", "of", "host", "scan", "fields", "found"],
  "concerns": ["any", "issues", "or", "anomalies"]
}

Key indicators of host scan data:
- "hosts" array at root level
- Host objects with "ip" fields
- Scan-specific fields like "services", "location", "autonomous_system", "dns"
- Network/security related metadata
- Consistent data structure across hosts
- Compare the provided data structure against the expected format above
"""
