"""
Application constants.
"""

API_DESCRIPTION = """
    ## Flood Mitigation Monitor API

    Backend for the flood-monitoring demonstration dashboard:

    * **Simulator**: synthetic water level, flow rate and weather readings
      published over MQTT
    * **Dashboard**: latest readings and a trailing window of sensor points
    * **Notifications**: Telegram and WhatsApp relay endpoints

    ### Scenario control
    Switch the simulator between `normal`, `flood`, `heavy_rain` and `sunny`
    through `PUT /simulation/scenario`.
    """

DEVICE_ID_ALPHABET = "0123456789abcdef"
DEVICE_ID_SUFFIX_LENGTH = 6
