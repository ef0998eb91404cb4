from enum import Enum, IntEnum

class UsuarioRol(str, Enum):
    GERENTE = "GERENTE"
    ADMINISTRADOR = "ADMINISTRADOR"
    CLIENTE = "CLIENTE"  # Solo lectura, limitado a su empresa

class EstadoSierraId(IntEnum):
    """Ids fijos de la tabla estados_sierra"""
    DISPONIBLE = 1
    EN_AFILADO = 2
    LISTA_PARA_RETIRO = 3
    FUERA_DE_SERVICIO = 4

NOMBRES_ESTADO_SIERRA = {
    EstadoSierraId.DISPONIBLE: "Disponible",
    EstadoSierraId.EN_AFILADO: "En proceso de afilado",
    EstadoSierraId.LISTA_PARA_RETIRO: "Lista para retiro",
    EstadoSierraId.FUERA_DE_SERVICIO: "Fuera de servicio",
}

# Estados desde los que una sierra puede salir en una salida masiva
ESTADOS_ELEGIBLES_SALIDA = (EstadoSierraId.EN_AFILADO, EstadoSierraId.LISTA_PARA_RETIRO)
